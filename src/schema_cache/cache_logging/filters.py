"""Log filters for credential masking and default context fields."""

import logging
import re


class CredentialFilter(logging.Filter):
    """Masks registry credentials (URL user info, Authorization values) in log messages."""

    URL_USERINFO_PATTERN = re.compile(r"(https?://)[^/\s:@]+:[^/\s@]+@")
    AUTH_HEADER_PATTERN = re.compile(
        r"(Authorization[:=]\s*(?:Basic|Bearer))\s+\S+", re.IGNORECASE
    )

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            msg = record.msg
            if "@" in msg:
                msg = self.URL_USERINFO_PATTERN.sub(r"\1[CREDENTIALS]@", msg)
            if "authorization" in msg.lower():
                msg = self.AUTH_HEADER_PATTERN.sub(r"\1 [REDACTED]", msg)
            record.msg = msg
        return True


class DefaultContextFilter(logging.Filter):
    """Adds placeholder subject and schema_id fields if not present."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "subject"):
            record.subject = "-"
        if not hasattr(record, "schema_id"):
            record.schema_id = "-"
        return True
