import logging

import httpx

from app.config import settings

logger = logging.getLogger(__name__)

# template -> (subject, body); rendered with str.format(**data)
TEMPLATES: dict[str, tuple[str, str]] = {
    "task_assigned": (
        "New task assigned: {task_name}",
        "You have been assigned \"{task_name}\" on {project_name}.\n\n{link}",
    ),
    "document_uploaded": (
        "New document on {project_name}",
        "{uploader_name} uploaded {document_name} (v{version}).\n\n{link}",
    ),
    "comment_mention": (
        "{sender_name} mentioned you",
        "{sender_name} mentioned you on {project_name}:\n\n"
        "\"{message_content}\"\n\n{link}",
    ),
    "approval_status": (
        "Submittal update: {submittal_name}",
        "{submittal_name} {status_message}.\n\n{link}",
    ),
    "permission_change": (
        "You were added to {project_name}",
        "You now have {role} access to {project_name}.\n\n{link}",
    ),
    "invitation": (
        "{inviter_name} invited you to {company_name} on Olumba",
        "{inviter_name} invited you to join {company_name} as {role}.{project_line}\n\n"
        "Accept the invitation: {invite_link}\n"
        "This link expires on {expires_on}.",
    ),
    "consultant_invite": (
        "You're invited to join {project_name} on Olumba",
        "{inviter_name} from {company_name} invited you to collaborate on "
        "{project_name} as a consultant.\n\n{project_description}\n\n"
        "{custom_message}\n\nAccept the invitation: {invite_link}",
    ),
}


class _SafeDict(dict):
    def __missing__(self, key):
        return ""


def render(template: str, data: dict) -> tuple[str, str]:
    if template not in TEMPLATES:
        raise ValueError(f"Unknown email template: {template}")
    subject, body = TEMPLATES[template]
    values = _SafeDict(data)
    return subject.format_map(values), body.format_map(values)


class EmailService:
    @staticmethod
    def is_configured() -> bool:
        return bool(settings.resend_api_key)

    @staticmethod
    def send(template: str, recipient: str, data: dict) -> None:
        subject, body = render(template, data)
        if not EmailService.is_configured():
            logger.info("Email disabled; would send %s to %s", template, recipient)
            return
        with httpx.Client(timeout=10.0) as client:
            resp = client.post(
                settings.resend_api_url,
                headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                json={
                    "from": settings.email_from,
                    "to": [recipient],
                    "subject": subject,
                    "text": body,
                },
            )
        resp.raise_for_status()
        logger.info("Sent %s email to %s", template, recipient)


email_service = EmailService()
