import html
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional, Protocol
from urllib.parse import urlencode

from stagelocker.core.config import Settings

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def send_verification(self, email: str, token: str) -> bool: ...

    def send_password_reset(self, email: str, token: str) -> bool: ...


def build_link(frontend_url: str, path: str, token: str) -> str:
    return f"{frontend_url.rstrip('/')}/{path}?{urlencode({'token': token})}"


def _render_html_template(*, title: str, message: str, cta_text: str, cta_link: str, footer_note: str) -> str:
    title_esc = html.escape(title)
    message_esc = html.escape(message)
    cta_text_esc = html.escape(cta_text)
    cta_link_esc = html.escape(cta_link, quote=True)
    footer_note_esc = html.escape(footer_note)

    return f"""<!doctype html>
<html lang="es">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width,initial-scale=1" />
    <title>{title_esc}</title>
  </head>
  <body style="margin:0; padding:24px; background-color:#0f0f0f; font-family:Arial, Helvetica, sans-serif;">
    <div style="max-width:600px; margin:0 auto; background-color:#121212; border:1px solid #333333; border-radius:14px; padding:22px 20px;">
      <div style="font-size:18px; font-weight:800; color:#ffffff;">{title_esc}</div>
      <p style="margin-top:10px; font-size:14px; line-height:20px; color:#d9d9d9;">{message_esc}</p>
      <a href="{cta_link_esc}" style="display:inline-block; margin-top:12px; padding:12px 18px; border-radius:10px; background-color:#f8d02d; color:#121212; font-size:14px; font-weight:800; text-decoration:none;">{cta_text_esc}</a>
      <p style="margin-top:14px; font-size:12px; line-height:18px; color:#a7a7a7;">
        Si el botón no funciona, copiá y pegá este link en tu navegador:<br />
        <a href="{cta_link_esc}" style="color:#f8d02d; word-break:break-all;">{cta_link_esc}</a>
      </p>
    </div>
    <p style="max-width:600px; margin:14px auto 0; font-size:12px; color:#7a7a7a;">{footer_note_esc}</p>
  </body>
</html>"""


class SmtpNotificationSink:
    """Envío de emails de verificación y reseteo por SMTP"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _from_header(self) -> Optional[str]:
        if self.settings.smtp_from:
            return self.settings.smtp_from
        if self.settings.smtp_from_email and self.settings.smtp_from_name:
            return f"{self.settings.smtp_from_name} <{self.settings.smtp_from_email}>"
        if self.settings.smtp_from_email:
            return self.settings.smtp_from_email
        return None

    def send_email(self, *, to_email: str, subject: str, text_body: str, html_body: Optional[str] = None) -> bool:
        settings = self.settings
        from_header = self._from_header()
        if not settings.smtp_host or not from_header:
            logger.error("SMTP mal configurado (host/from). Email no enviado a %s", to_email)
            return False

        msg = EmailMessage()
        msg["From"] = from_header
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.set_content(text_body)
        if html_body:
            msg.add_alternative(html_body, subtype="html")

        try:
            if settings.smtp_use_ssl:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=10) as server:
                    if settings.smtp_username and settings.smtp_password:
                        server.login(settings.smtp_username, settings.smtp_password)
                    server.send_message(msg)
                    return True

            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=10) as server:
                server.ehlo()
                if settings.smtp_use_tls:
                    server.starttls(context=ssl.create_default_context())
                    server.ehlo()
                if settings.smtp_username and settings.smtp_password:
                    server.login(settings.smtp_username, settings.smtp_password)
                server.send_message(msg)
                return True
        except (smtplib.SMTPException, OSError):
            logger.exception("No se pudo enviar email a %s", to_email)
            return False

    def send_verification(self, email: str, token: str) -> bool:
        link = build_link(self.settings.frontend_url, "verify-email", token)
        minutes = self.settings.short_lived_token_expire_minutes
        text_body = (
            "Tu cuenta fue creada correctamente.\n\n"
            f"Confirmá tu email para poder iniciar sesión: {link}\n\n"
            f"Este link vence en {minutes} minutos. "
            "Si vos no creaste esta cuenta, podés ignorar este email."
        )
        html_body = _render_html_template(
            title="Confirmar cuenta",
            message="Tu cuenta fue creada correctamente. Confirmá tu email para poder iniciar sesión.",
            cta_text="Confirmar mi cuenta",
            cta_link=link,
            footer_note=f"Este link vence en {minutes} minutos. Si vos no creaste esta cuenta, podés ignorar este email.",
        )
        return self.send_email(
            to_email=email,
            subject=f"{self.settings.app_name} - Confirmá tu cuenta",
            text_body=text_body,
            html_body=html_body,
        )

    def send_password_reset(self, email: str, token: str) -> bool:
        link = build_link(self.settings.frontend_url, "reset-password", token)
        minutes = self.settings.short_lived_token_expire_minutes
        text_body = (
            "Recibimos una solicitud para restablecer tu contraseña.\n\n"
            f"Abrí este link para continuar: {link}\n\n"
            f"Este link vence en {minutes} minutos. "
            "Si vos no solicitaste este cambio, podés ignorar este email."
        )
        html_body = _render_html_template(
            title="Restablecer contraseña",
            message="Recibimos una solicitud para restablecer tu contraseña. Hacé clic en el botón para continuar.",
            cta_text="Restablecer contraseña",
            cta_link=link,
            footer_note=f"Este link vence en {minutes} minutos. Si vos no solicitaste este cambio, podés ignorar este email.",
        )
        return self.send_email(
            to_email=email,
            subject=f"{self.settings.app_name} - Restablecer contraseña",
            text_body=text_body,
            html_body=html_body,
        )


class ConsoleNotificationSink:
    """Backend de desarrollo: escribe el link en el log en lugar de enviarlo"""

    def __init__(self, settings: Settings):
        self.settings = settings

    def send_verification(self, email: str, token: str) -> bool:
        logger.info("Link de verificación para %s: %s", email, build_link(self.settings.frontend_url, "verify-email", token))
        return True

    def send_password_reset(self, email: str, token: str) -> bool:
        logger.info("Link de reseteo para %s: %s", email, build_link(self.settings.frontend_url, "reset-password", token))
        return True


class DisabledNotificationSink:
    def send_verification(self, email: str, token: str) -> bool:
        return False

    def send_password_reset(self, email: str, token: str) -> bool:
        return False


def build_notification_sink(settings: Settings) -> NotificationSink:
    if settings.email_backend == "smtp":
        return SmtpNotificationSink(settings)
    if settings.email_backend == "console":
        if settings.environment == "production":
            logger.warning("EMAIL_BACKEND=console en producción: los links solo quedan en el log")
        return ConsoleNotificationSink(settings)
    return DisabledNotificationSink()
