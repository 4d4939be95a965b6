"""Project sharing: AES-GCM encryption plus upload to the share API.

The project is encrypted client-side with a fresh 256-bit key; only the
ciphertext and IV are uploaded. The key travels in the link fragment
(``/shared/{share_id}#key=...``), so the share server never sees it.
"""

import base64
import json
import logging
import os
from dataclasses import dataclass
from urllib.parse import quote

import httpx
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from vibecut.config import get_settings
from vibecut.exceptions import EncryptionError, SharedProjectNotFoundError, ShareUploadError
from vibecut.schemas.project import AppState, Project

logger = logging.getLogger(__name__)

KEY_BITS = 256
IV_BYTES = 12


@dataclass(frozen=True)
class EncryptedPayload:
    encrypted: str  # base64 ciphertext (tag appended)
    iv: str  # base64 12-byte nonce

    def to_json(self) -> str:
        return json.dumps({"encrypted": self.encrypted, "iv": self.iv})

    @classmethod
    def from_json(cls, raw: str) -> "EncryptedPayload":
        try:
            data = json.loads(raw)
            return cls(encrypted=data["encrypted"], iv=data["iv"])
        except (ValueError, KeyError, TypeError) as e:
            raise EncryptionError("Malformed encrypted payload") from e


@dataclass(frozen=True)
class ShareLink:
    share_id: str
    key: str
    url: str


def generate_key() -> bytes:
    return AESGCM.generate_key(bit_length=KEY_BITS)


def export_key(key: bytes) -> str:
    return base64.b64encode(key).decode("ascii")


def import_key(key_b64: str) -> bytes:
    try:
        key = base64.b64decode(key_b64, validate=True)
    except ValueError as e:
        raise EncryptionError("Share key is not valid base64") from e
    if len(key) * 8 != KEY_BITS:
        raise EncryptionError(f"Share key must be {KEY_BITS} bits")
    return key


def encrypt(plaintext: str, key: bytes) -> EncryptedPayload:
    """Encrypt with AES-GCM using a fresh random IV."""
    iv = os.urandom(IV_BYTES)
    ciphertext = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return EncryptedPayload(
        encrypted=base64.b64encode(ciphertext).decode("ascii"),
        iv=base64.b64encode(iv).decode("ascii"),
    )


def decrypt(payload: EncryptedPayload, key: bytes) -> str:
    try:
        iv = base64.b64decode(payload.iv, validate=True)
        ciphertext = base64.b64decode(payload.encrypted, validate=True)
        return AESGCM(key).decrypt(iv, ciphertext, None).decode("utf-8")
    except (InvalidTag, ValueError) as e:
        raise EncryptionError("Failed to decrypt shared project (wrong key or corrupted data)") from e


def prepare_for_sharing(project: Project) -> Project:
    """Strip editing state: view mode, first page selected, empty history."""
    first_page = project.composition.pages[0].id if project.composition.pages else None
    return project.model_copy(
        update={
            "app_state": AppState(
                selected_element_id=None,
                selected_page_id=first_page,
                view_mode="view",
                zoom_level=1,
                show_grid=False,
            )
        },
        deep=True,
    )


class ShareService:
    def __init__(
        self,
        api_url: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_url = (api_url or settings.share_api_url).rstrip("/")
        self.base_url = (base_url or settings.share_base_url).rstrip("/")
        self.timeout = timeout or settings.share_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.api_url, timeout=self.timeout, transport=self._transport)

    async def upload(self, payload: EncryptedPayload, project_name: str) -> str:
        """Upload an encrypted project; returns the share id."""
        try:
            async with self._client() as client:
                resp = await client.post(
                    "/api/share",
                    json={"encryptedData": payload.to_json(), "projectName": project_name},
                )
                resp.raise_for_status()
                share_id = resp.json()["shareId"]
        except httpx.HTTPStatusError as e:
            raise ShareUploadError(f"Share upload failed with HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ShareUploadError(f"Share upload failed: {e}") from e
        except (ValueError, KeyError) as e:
            raise ShareUploadError("Share API returned no shareId") from e
        return share_id

    async def download(self, share_id: str) -> EncryptedPayload:
        try:
            async with self._client() as client:
                resp = await client.get(f"/api/share/{quote(share_id, safe='')}")
                if resp.status_code == 404:
                    raise SharedProjectNotFoundError(share_id)
                resp.raise_for_status()
                raw = resp.json()["encryptedData"]
        except httpx.HTTPError as e:
            raise ShareUploadError(f"Failed to fetch shared project: {e}") from e
        except (ValueError, KeyError) as e:
            raise ShareUploadError("Share API returned no encryptedData") from e
        return EncryptedPayload.from_json(raw)

    def build_link(self, share_id: str, key_b64: str) -> str:
        return f"{self.base_url}/shared/{share_id}#key={quote(key_b64, safe='')}"

    async def share_project(self, project: Project) -> ShareLink:
        """Encrypt ``project`` (files included) and upload it."""
        shared = prepare_for_sharing(project)
        key = generate_key()
        plaintext = shared.model_dump_json(by_alias=True, exclude_none=True)
        payload = encrypt(plaintext, key)
        share_id = await self.upload(payload, project.name or get_settings().default_project_name)
        key_b64 = export_key(key)
        logger.info(f"Shared project {project.id} as {share_id}")
        return ShareLink(share_id=share_id, key=key_b64, url=self.build_link(share_id, key_b64))

    async def load_shared_project(self, share_id: str, key_b64: str) -> dict:
        """Download and decrypt a shared project; returns the raw project JSON."""
        payload = await self.download(share_id)
        return json.loads(decrypt(payload, import_key(key_b64)))
