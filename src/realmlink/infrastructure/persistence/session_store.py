# Hey future me - this is the ONE slot where the session lives between process restarts.
#
# WRITE PATH: serialize -> temp file in the SAME directory -> fsync -> os.replace().
# os.replace() is atomic on POSIX and Windows as long as both paths are on the same
# filesystem (hence same directory). A crash mid-write leaves the old record or a stray
# .tmp file, never a half-written bedrock_session.json.
#
# PERMISSIONS: mkstemp() creates the temp file 0600 and os.replace() keeps that mode, so the
# refresh token is never world-readable, not even for a moment.
#
# NO BUSINESS LOGIC HERE: the store doesn't know what "expired" or "usable" means. It
# loads, saves and deletes. SessionManager decides what to do with the result.
"""File-backed single-slot session store."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path

from realmlink.domain.entities import BedrockSession
from realmlink.domain.exceptions import SessionParseError, SessionStorageError
from realmlink.domain.ports import ISessionCodec, ISessionStore

logger = logging.getLogger(__name__)


class FileSessionStore(ISessionStore):
    """Stores one serialized session in a JSON file."""

    def __init__(self, path: Path, codec: ISessionCodec) -> None:
        """Initialize the store.

        Args:
            path: File that holds the session record
            codec: Serializer for session records (the identity provider)
        """
        self._path = Path(path)
        self._codec = codec

    @property
    def path(self) -> Path:
        """Location of the session record."""
        return self._path

    def exists(self) -> bool:
        """True if a record (possibly empty or malformed) is on disk."""
        return self._path.exists()

    def save(self, session: BedrockSession) -> None:
        """Atomically replace the stored record.

        Raises:
            SessionStorageError: If the record can't be written
        """
        text = self._codec.to_json(session)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(text)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise SessionStorageError(
                f"Failed to save session to {self._path}: {e}", path=str(self._path)
            ) from e

        logger.debug("Session saved to %s", self._path)

    def load(self) -> BedrockSession | None:
        """Read the stored record.

        Returns:
            The session, or None if there is no record or it's blank

        Raises:
            SessionStorageError: If the record can't be read
            SessionParseError: If the record is not a well-formed session
        """
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("Session file does not exist: %s", self._path)
            return None
        except UnicodeDecodeError as e:
            raise SessionParseError(f"Session record is not UTF-8 text: {e.reason}") from e
        except OSError as e:
            raise SessionStorageError(
                f"Failed to read session from {self._path}: {e}", path=str(self._path)
            ) from e

        if not text.strip():
            logger.warning("Session file is empty: %s", self._path)
            return None

        return self._codec.from_json(text)

    def delete(self) -> None:
        """Remove the record. Best effort - failures are logged, never raised."""
        try:
            if self._path.exists():
                self._path.unlink()
                logger.debug("Session file deleted: %s", self._path)
        except OSError as e:
            logger.error("Failed to delete session file %s: %s", self._path, e)
