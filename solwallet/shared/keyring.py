"""Encrypted secret storage for wallet keypairs.

Secrets are base58 keypair strings. Each entry is Fernet-encrypted with a key
derived from the wallet password, and all entries share one salt stored next
to them in ``keyring.json``.
"""

from __future__ import annotations

import base64
import json
import logging
import os
from pathlib import Path

import base58
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from solders.keypair import Keypair

from solwallet.config import resolve_wallet_dir
from solwallet.shared.errors import KeyringError

logger = logging.getLogger(__name__)

KEYRING_FILENAME = "keyring.json"
KEYRING_VERSION = 1
KDF_ITERATIONS = 390_000


def parse_keypair(secret: str) -> Keypair:
    try:
        return Keypair.from_bytes(base58.b58decode(secret.strip()))
    except ValueError as e:
        raise KeyringError(f"Invalid keypair: {e}")


def derive_key(password: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(password.encode()))


class KeyringService:
    def __init__(
        self,
        password: str,
        wallet_dir: str | Path | None = None,
        iterations: int = KDF_ITERATIONS,
    ):
        if not password:
            raise KeyringError("Password is required to open the keyring")
        self.keyring_file = resolve_wallet_dir(wallet_dir) / KEYRING_FILENAME
        self._password = password
        self._iterations = iterations

    @classmethod
    def exists(cls, wallet_dir: str | Path | None = None) -> bool:
        keyring_file = resolve_wallet_dir(wallet_dir) / KEYRING_FILENAME
        if not keyring_file.exists():
            return False
        with open(keyring_file, "r") as f:
            return bool(json.load(f).get("entries"))

    def _read(self) -> dict:
        if not self.keyring_file.exists():
            return {
                "version": KEYRING_VERSION,
                "salt": base64.b64encode(os.urandom(16)).decode(),
                "entries": [],
            }
        with open(self.keyring_file, "r") as f:
            return json.load(f)

    def _write(self, data: dict) -> None:
        self.keyring_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.keyring_file, "w") as f:
            json.dump(data, f, indent=2)
        os.chmod(self.keyring_file, 0o600)

    def _cipher(self, data: dict) -> Fernet:
        salt = base64.b64decode(data["salt"])
        return Fernet(derive_key(self._password, salt, self._iterations))

    def save(self, secret: str) -> int:
        keypair = parse_keypair(secret)

        data = self._read()
        public_key = str(keypair.pubkey())
        for index, entry in enumerate(data["entries"]):
            if entry["public_key"] == public_key:
                logger.info("Keypair %s already stored at index %d", public_key, index)
                return index

        token = self._cipher(data).encrypt(secret.strip().encode())
        data["entries"].append({"public_key": public_key, "secret": token.decode()})
        self._write(data)
        index = len(data["entries"]) - 1
        logger.info("Stored keypair %s at index %d", public_key, index)
        return index

    def load(self, index: int) -> str:
        data = self._read()
        entries = data["entries"]
        if index < 0 or index >= len(entries):
            raise KeyringError(f"No keypair stored at index {index}")
        try:
            secret = self._cipher(data).decrypt(entries[index]["secret"].encode())
        except InvalidToken:
            raise KeyringError("Failed to decrypt keypair: wrong password")
        return secret.decode()

    def load_keypair(self, index: int) -> Keypair:
        return parse_keypair(self.load(index))

    def list(self) -> list[str]:
        return [entry["public_key"] for entry in self._read()["entries"]]

    def clear(self) -> None:
        if self.keyring_file.exists():
            self.keyring_file.unlink()
            logger.info("Keyring cleared")
