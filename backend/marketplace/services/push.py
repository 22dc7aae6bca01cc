import hashlib
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import requests
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import service_account
from sqlalchemy.orm import Session

from marketplace.core.config import get_settings
from marketplace.models.notification import DeviceToken

logger = logging.getLogger(__name__)

FCM_API_BASE = "https://fcm.googleapis.com/v1"
FCM_SCOPE = "https://www.googleapis.com/auth/firebase.messaging"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

INVALID_TOKEN = "messaging/invalid-registration-token"
TOKEN_NOT_REGISTERED = "messaging/registration-token-not-registered"
PRUNABLE_ERROR_CODES = {INVALID_TOKEN, TOKEN_NOT_REGISTERED}
AUTHENTICATION_ERROR = "messaging/authentication-error"

# FCM HTTP v1 error statuses -> Admin SDK style codes used across the app.
FCM_ERROR_CODES = {
    "UNREGISTERED": TOKEN_NOT_REGISTERED,
    "INVALID_ARGUMENT": INVALID_TOKEN,
    "NOT_FOUND": TOKEN_NOT_REGISTERED,
    "SENDER_ID_MISMATCH": "messaging/mismatched-credential",
    "QUOTA_EXCEEDED": "messaging/message-rate-exceeded",
    "UNAVAILABLE": "messaging/server-unavailable",
    "INTERNAL": "messaging/internal-error",
    "THIRD_PARTY_AUTH_ERROR": "messaging/third-party-auth-error",
    "UNAUTHENTICATED": AUTHENTICATION_ERROR,
}


@dataclass
class PushMessage:
    title: str
    body: str
    tag: str
    data: dict[str, str] = field(default_factory=dict)


@dataclass
class PushResult:
    success: bool
    error_code: str | None = None


@dataclass
class DeliveryResult:
    requested: int = 0
    success: int = 0
    failure: int = 0
    error_codes: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "requested": self.requested,
            "success": self.success,
            "failure": self.failure,
            "error_codes": list(self.error_codes),
        }


class FcmPushProvider:
    """Sends one FCM HTTP v1 request per device token.

    Requests are authorized with a short-lived OAuth2 token minted from the
    service account; it is refreshed whenever it has expired.
    """

    def __init__(self, project_id: str, credentials, timeout: int = 10):
        self.endpoint = f"{FCM_API_BASE}/projects/{project_id}/messages:send"
        self.credentials = credentials
        self.timeout = timeout

    def _body(self, token: str, message: PushMessage) -> dict[str, Any]:
        return {
            "message": {
                "token": token,
                "notification": {"title": message.title, "body": message.body},
                "data": message.data,
                "android": {
                    "priority": "high",
                    "collapse_key": message.tag,
                    "notification": {"channel_id": "default_channel", "tag": message.tag},
                },
                "apns": {"payload": {"aps": {"sound": "default"}}},
            }
        }

    @staticmethod
    def _error_code(response: requests.Response) -> str:
        try:
            error = response.json().get("error") or {}
        except ValueError:
            return f"messaging/http-{response.status_code}"
        for detail in error.get("details") or []:
            code = detail.get("errorCode")
            if code:
                return FCM_ERROR_CODES.get(code, f"messaging/{code.lower()}")
        status = error.get("status") or ""
        return FCM_ERROR_CODES.get(status, f"messaging/http-{response.status_code}")

    def _access_token(self) -> str:
        if not self.credentials.valid:
            self.credentials.refresh(google_requests.Request())
        return self.credentials.token

    def send_each(self, tokens: list[str], message: PushMessage) -> list[PushResult]:
        try:
            access_token = self._access_token()
        except google_auth_exceptions.GoogleAuthError as exc:
            logger.error("Could not obtain an FCM access token: %s", exc)
            return [PushResult(success=False, error_code=AUTHENTICATION_ERROR) for _ in tokens]

        headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }
        results: list[PushResult] = []
        with requests.Session() as session:
            for token in tokens:
                try:
                    response = session.post(
                        self.endpoint, json=self._body(token, message), headers=headers, timeout=self.timeout
                    )
                except requests.RequestException as exc:
                    logger.warning("FCM request failed: %s", exc)
                    results.append(PushResult(success=False, error_code="messaging/network-error"))
                    continue
                if response.ok:
                    results.append(PushResult(success=True))
                else:
                    results.append(PushResult(success=False, error_code=self._error_code(response)))
        return results


def service_account_credentials(project_id: str, client_email: str, private_key: str):
    info = {
        "type": "service_account",
        "project_id": project_id,
        "client_email": client_email,
        # Keys pasted into env files usually arrive with literal "\n" sequences.
        "private_key": private_key.replace("\\n", "\n"),
        "token_uri": GOOGLE_TOKEN_URI,
    }
    return service_account.Credentials.from_service_account_info(info, scopes=[FCM_SCOPE])


@lru_cache
def get_push_provider() -> FcmPushProvider | None:
    """Provider built from the Firebase service account, or None when push is not configured.

    Cached so the minted access token is reused until it expires.
    """
    settings = get_settings()
    if not (settings.FIREBASE_PROJECT_ID and settings.FIREBASE_CLIENT_EMAIL and settings.FIREBASE_PRIVATE_KEY):
        return None
    credentials = service_account_credentials(
        settings.FIREBASE_PROJECT_ID, settings.FIREBASE_CLIENT_EMAIL, settings.FIREBASE_PRIVATE_KEY
    )
    return FcmPushProvider(settings.FIREBASE_PROJECT_ID, credentials, settings.FCM_TIMEOUT_SECONDS)


def notification_tag(entity_type: str, entity_id: int | None, message: str) -> str:
    raw = f"{entity_type}:{entity_id if entity_id is not None else ''}:{message}"
    return hashlib.sha1(raw.encode("utf-8")).hexdigest()[:24]


def fetch_device_tokens(db: Session, recipient_ids: list[int] | None) -> list[str]:
    query = db.query(DeviceToken.fcm_token).distinct()
    if recipient_ids is not None:
        if not recipient_ids:
            return []
        query = query.filter(DeviceToken.user_id.in_(recipient_ids))
    tokens = [(token or "").strip() for (token,) in query.all()]
    return [token for token in tokens if token]


def remove_invalid_tokens(db: Session, tokens: list[str]) -> int:
    if not tokens:
        return 0
    removed = db.query(DeviceToken).filter(DeviceToken.fcm_token.in_(tokens)).delete(synchronize_session=False)
    db.commit()
    return removed


def _chunks(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i : i + size]


def send_push_notifications(
    db: Session,
    message: str,
    recipient_ids: list[int] | None,
    entity_type: str,
    entity_id: int | None,
    provider: FcmPushProvider | None = None,
) -> DeliveryResult:
    """Push ``message`` to every device of ``recipient_ids`` (all devices when None).

    Tokens the provider reports as invalid or unregistered are deleted so they
    are not retried on the next notification.
    """
    settings = get_settings()
    tokens = fetch_device_tokens(db, recipient_ids)
    summary = DeliveryResult(requested=len(tokens))
    if not tokens:
        return summary

    provider = provider or get_push_provider()
    if provider is None:
        logger.info("Push provider not configured; skipping %d device(s)", len(tokens))
        return summary

    tag = notification_tag(entity_type, entity_id, message)
    push = PushMessage(
        title=settings.PUSH_NOTIFICATION_TITLE,
        body=message,
        tag=tag,
        data={
            "message": message,
            "related_entity_type": entity_type,
            "related_entity_id": str(entity_id) if entity_id is not None else "",
        },
    )

    error_codes: set[str] = set()
    for batch in _chunks(tokens, settings.PUSH_BATCH_LIMIT):
        results = provider.send_each(batch, push)
        invalid: list[str] = []
        batch_failures: list[str] = []
        for token, result in zip(batch, results):
            if result.success:
                summary.success += 1
                continue
            summary.failure += 1
            code = result.error_code or ""
            if code:
                error_codes.add(code)
                batch_failures.append(code)
            if code in PRUNABLE_ERROR_CODES:
                invalid.append(token)

        if batch_failures:
            logger.warning("Push batch had %d failure(s): %s", len(batch_failures), sorted(set(batch_failures)))
        if invalid:
            removed = remove_invalid_tokens(db, invalid)
            logger.info("Removed %d invalid device token(s)", removed)

    summary.error_codes = sorted(error_codes)
    return summary
