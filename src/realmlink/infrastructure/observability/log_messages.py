"""Structured log message templates for the session lifecycle.

Hey future me - "no valid session" looks the same to the user no matter why it happened,
so the logs are the ONLY place the real reason shows up. These templates make sure every
discarded session says what was wrong and what to check:

    ⚠️ Session Discarded
    ├─ Reason: Realms XSTS token missing
    └─ 💡 Log in again with an account that has Realms access

Usage:
    from realmlink.infrastructure.observability.log_messages import LogMessages

    logger.warning(LogMessages.session_discarded(reason="record is malformed"))
"""

from dataclasses import dataclass
from typing import Any


@dataclass
class LogTemplate:
    """A reusable log message template with placeholders."""

    icon: str
    title: str
    fields: dict[str, str]
    hint: str | None = None

    def format(self, **kwargs: Any) -> str:
        """Format the template with provided values.

        Args:
            **kwargs: Values to fill into template placeholders

        Returns:
            Formatted multi-line log message with icon, title, fields, and optional hint
        """
        lines = [f"{self.icon} {self.title}"]

        field_items = list(self.fields.items())
        for i, (key, value_template) in enumerate(field_items):
            prefix = "└─" if i == len(field_items) - 1 and not self.hint else "├─"
            try:
                value = value_template.format(**kwargs) if kwargs else value_template
            except KeyError as e:
                value = f"<missing: {e}>"
            except (IndexError, ValueError):
                # Raw error text with stray braces
                value = value_template
            lines.append(f"{prefix} {key}: {value}")

        if self.hint:
            try:
                hint_text = self.hint.format(**kwargs) if kwargs else self.hint
            except KeyError as e:
                hint_text = f"<missing: {e}>"
            except (IndexError, ValueError):
                hint_text = self.hint
            lines.append(f"└─ 💡 {hint_text}")

        return "\n".join(lines)


class LogMessages:
    """Collection of standardized log message templates.

    Template categories:
    - Connection errors (Xbox Live, Realms)
    - Session lifecycle (discarded, refresh failed)
    - Login flow (started, failed)
    """

    # === Connection Errors ===

    @staticmethod
    def connection_failed(
        service: str,
        target: str,
        error: str | None = None,
        hint: str | None = None,
    ) -> str:
        """Format a connection failure message.

        Args:
            service: Service name (e.g., "Xbox Live", "Realms")
            target: Connection target (URL)
            error: Error message from exception
            hint: Custom troubleshooting hint

        Returns:
            Formatted log message
        """
        fields = {"Service": service, "Target": target}
        if error:
            fields["Reason"] = error

        template = LogTemplate(
            icon="🔴",
            title=f"{service} Connection Failed",
            fields=fields,
            hint=hint or f"Check network access to {service}",
        )
        return template.format()

    # === Session Lifecycle ===

    @staticmethod
    def session_discarded(reason: str, hint: str | None = None) -> str:
        """Format a message for a session record that was deleted.

        Args:
            reason: Why the record was unusable
            hint: Custom troubleshooting hint
        """
        template = LogTemplate(
            icon="⚠️",
            title="Session Discarded",
            fields={"Reason": reason},
            hint=hint or "User has to log in again",
        )
        return template.format()

    @staticmethod
    def token_refresh_failed(
        error: str,
        requires_reauth: bool,
        error_code: str | None = None,
    ) -> str:
        """Format a session refresh failure.

        Args:
            error: Error message
            requires_reauth: Whether the refresh token is dead
            error_code: OAuth error code if the provider sent one
        """
        fields = {"Reason": error, "Re-auth required": "yes" if requires_reauth else "no"}
        if error_code:
            fields["Error code"] = error_code

        hint = (
            "Refresh token revoked or expired - start a new device-code login"
            if requires_reauth
            else "Probably transient - check connectivity to login.live.com"
        )
        template = LogTemplate(
            icon="🔴",
            title="Session Refresh Failed",
            fields=fields,
            hint=hint,
        )
        return template.format()

    # === Login Flow ===

    @staticmethod
    def login_code_issued(user_code: str, verification_uri: str, expires_in: int) -> str:
        """Format the device-code-issued message (user code is not secret)."""
        template = LogTemplate(
            icon="🔑",
            title="Device Code Issued",
            fields={
                "Code": user_code,
                "URL": verification_uri,
                "Expires in": f"{expires_in}s",
            },
        )
        return template.format()

    @staticmethod
    def login_failed(error: str, state: str, hint: str | None = None) -> str:
        """Format a login attempt failure.

        Args:
            error: Error message
            state: State the attempt was in when it failed
            hint: Custom troubleshooting hint
        """
        template = LogTemplate(
            icon="🔴",
            title="Login Failed",
            fields={"Reason": error, "State": state},
            hint=hint or "Start a new login; if it keeps failing check the account's Xbox profile",
        )
        return template.format()
