"""Celery task definitions: notification email delivery and the expiry sweep."""

import asyncio
import logging
import smtplib
from datetime import UTC, datetime
from email.message import EmailMessage
from typing import Any

from celery import Task
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from accessgate.config import settings
from accessgate.models.nosql.activity import ActivityEvent, ActivityType
from accessgate.workers.celery_app import celery_app

logger = logging.getLogger(__name__)

EMAIL_TEMPLATES: dict[str, tuple[str, str]] = {
    "invitation": (
        "{inviting_user} invited you to collaborate",
        "{inviting_user} would like to collaborate with you.\n\nAccept: {accept_url}\n",
    ),
    "container_invitation": (
        "{inviting_user} invited you to \"{container_title}\"",
        "Hello {invited_name},\n\n{inviting_user} invited you to \"{container_title}\" "
        "as {role}.\n\nAccept: {accept_url}\n",
    ),
    "container_invitation_acceptance": (
        "You now have access to \"{container_title}\"",
        "{adding_user} gave you the {role} role on \"{container_title}\".\n\n"
        "Open: {container_url}\n",
    ),
    "owner_collaborator_added": (
        "New collaborator on \"{container_title}\"",
        "{adding_user} added {added_user} to \"{container_title}\" as {role}.\n\n"
        "Open: {container_url}\n",
    ),
    "container_request": (
        "{requesting_user} requests access to \"{container_title}\"",
        "{requesting_user} asked for the {role} role on \"{container_title}\".\n\n"
        "Review: {container_url}\n",
    ),
    "container_request_response": (
        "Your access request for \"{container_title}\"",
        "{acting_user} {verdict} your request for the {role} role on "
        "\"{container_title}\".\n\nOpen: {container_url}\n",
    ),
}


def get_mongodb_sync():
    """Get synchronous MongoDB client for Celery tasks."""
    client = MongoClient(settings.MONGODB_URL)
    return client[settings.MONGODB_DATABASE]


class TransientError(Exception):
    """Error that should trigger a retry."""

    pass


class PermanentError(Exception):
    """Error that should not trigger a retry."""

    pass


class NotificationTask(Task):
    """Records undeliverable notifications in the activity log."""

    abstract = True

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Task {task_id} failed: {exc}")

        template, recipient = (list(args) + [None, None])[:2]
        event = ActivityEvent(
            user_id=str(recipient),
            event_type=ActivityType.NOTIFICATION_FAILED,
            payload={"template": template, "task_id": task_id, "error": str(exc)},
        )
        try:
            get_mongodb_sync().activities.insert_one(event.to_mongo())
        except PyMongoError as e:
            logger.error(f"Failed to record notification failure: {e}")

    def on_success(self, retval, task_id, args, kwargs):
        logger.info(f"Task {task_id} completed successfully")


def render_email(template: str, recipient: str, context: dict[str, Any]) -> EmailMessage:
    """Build the email for a notification template."""
    if template not in EMAIL_TEMPLATES:
        raise PermanentError(f"Unknown email template '{template}'")

    values = dict(context)
    if "accepted" in values:
        values["verdict"] = "accepted" if values["accepted"] else "declined"
    subject, body = EMAIL_TEMPLATES[template]

    try:
        message = EmailMessage()
        message["Subject"] = subject.format(**values)
        message["From"] = settings.MAIL_FROM
        message["To"] = recipient
        message.set_content(body.format(**values))
    except KeyError as e:
        raise PermanentError(f"Template '{template}' is missing {e}") from e
    return message


def _deliver(message: EmailMessage) -> None:
    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
        if settings.SMTP_USE_TLS:
            smtp.starttls()
        if settings.SMTP_USERNAME and settings.SMTP_PASSWORD:
            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
        smtp.send_message(message)


@celery_app.task(
    bind=True,
    base=NotificationTask,
    autoretry_for=(TransientError,),
    retry_backoff=True,
    retry_backoff_max=600,
    max_retries=5,
)
def send_email(self, template: str, recipient: str, context: dict[str, Any]) -> dict[str, Any]:
    """Render and send one notification email."""
    message = render_email(template, recipient, context)
    try:
        _deliver(message)
    except smtplib.SMTPRecipientsRefused as e:
        raise PermanentError(f"Recipient {recipient} refused: {e}") from e
    except (smtplib.SMTPException, OSError) as e:
        raise TransientError(str(e)) from e

    logger.info(f"Sent '{template}' email to {recipient}")
    return {"template": template, "recipient": recipient}


async def _purge_expired(now: datetime) -> dict[str, int]:
    from accessgate.db.postgres import worker_session
    from accessgate.repositories.invitations import (
        SQLContainerInvitationRepository,
        SQLInvitationRepository,
        SQLInvitationTokenRepository,
    )

    async with worker_session() as session:
        removed = {
            "invitations": await SQLInvitationRepository(session).remove_expired(now),
            "container_invitations": await SQLContainerInvitationRepository(
                session
            ).remove_expired(now),
            "invitation_tokens": await SQLInvitationTokenRepository(session).remove_expired(now),
        }
        await session.commit()
    return removed


@celery_app.task
def purge_expired_invitations() -> dict[str, int]:
    """Delete invitations and link tokens whose expiry has passed."""
    removed = asyncio.run(_purge_expired(datetime.now(UTC)))
    logger.info(f"Purged expired records: {removed}")
    return removed
