"""Passcodes for Figma webhooks.

Figma echoes the passcode it was registered with on every delivery. The value
is derived from the admin user, the team and the installation secret, so it
can be recomputed on delivery instead of trusted from storage alone.
"""

import hashlib
import hmac
from dataclasses import dataclass, field


@dataclass(frozen=True)
class WebhookPasscodeInput:
    atlassian_user_id: str
    figma_team_id: str
    connect_installation_secret: str = field(repr=False)


def generate_webhook_passcode(params: WebhookPasscodeInput) -> str:
    material = (
        params.atlassian_user_id + params.figma_team_id + params.connect_installation_secret
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def validate_webhook_passcode(passcode: str, params: WebhookPasscodeInput) -> bool:
    return hmac.compare_digest(passcode.encode("utf-8"), generate_webhook_passcode(params).encode())
