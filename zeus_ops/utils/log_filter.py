"""Secret filtering for log messages.

Prevents connection strings, client secrets and tokens pulled from Key Vault
or app settings from ending up in monitoring logs.
"""

from __future__ import annotations

import re

# Patterns to mask in log messages
SECRET_PATTERNS = [
    # Connection string keys (storage, Service Bus, Cosmos DB, App Insights)
    (r"(AccountKey|SharedAccessKey|InstrumentationKey)=[^;\s]+", r"\1=***", re.IGNORECASE),
    # SAS signatures in URLs
    (r"([?&]sig=)[^&\s]+", r"\1***", re.IGNORECASE),
    # Azure AD client secrets
    (r"(client[_-]?secret|AZURE_CLIENT_SECRET)\s*[=:]\s*\S+", r"\1=***", re.IGNORECASE),
    # Password patterns
    (r"(password|passwd|pwd)\s*[=:]\s*[^;\s]+", r"\1=***", re.IGNORECASE),
    # Token patterns
    (r"(token|secret|credential)\s*[=:]\s*\S+", r"\1=***", re.IGNORECASE),
    # Bearer tokens
    (r"Bearer\s+\S+", "Bearer ***"),
]


def filter_secrets(text: str) -> str:
    """
    Mask secrets in text.

    Args:
        text: Input text that may contain secrets

    Returns:
        Text with secrets masked as ***
    """
    result = text
    for pattern in SECRET_PATTERNS:
        if len(pattern) == 3:
            regex, replacement, flags = pattern
            result = re.sub(regex, replacement, result, flags=flags)
        else:
            regex, replacement = pattern
            result = re.sub(regex, replacement, result)
    return result
