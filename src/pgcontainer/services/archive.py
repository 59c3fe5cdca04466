"""Build context packing for pgcontainer."""

import io
import tarfile
import time
from typing import List, Tuple

from pgcontainer.constants import DOCKERFILE_NAME, DUMP_FILE_NAME, DUMP_MODE, RECIPE_MODE
from pgcontainer.errors import PackingError


class ArchiveService:
    """Packs the Dockerfile and the dump into an in-memory tar build context."""

    def _add_entry(self, tar: tarfile.TarFile, name: str, content: bytes, mode: int):
        info = tarfile.TarInfo(name=name)
        info.size = len(content)
        info.mode = mode
        info.type = tarfile.REGTYPE
        info.mtime = int(time.time())
        tar.addfile(info, io.BytesIO(content))

    def build_context(self, recipe: str, payload: bytes) -> bytes:
        """Return tar bytes holding the Dockerfile first and ``dump.sql`` second.

        The dump is world-writable so the build can copy it whatever user the
        engine builds as.
        """
        buffer = io.BytesIO()
        try:
            with tarfile.open(fileobj=buffer, mode="w") as tar:
                self._add_entry(tar, DOCKERFILE_NAME, recipe.encode("utf-8"), RECIPE_MODE)
                self._add_entry(tar, DUMP_FILE_NAME, payload, DUMP_MODE)
        except (tarfile.TarError, OSError, ValueError) as exc:
            raise PackingError(f"Failed to write build context archive: {exc}") from exc

        return buffer.getvalue()

    def list_entries(self, context: bytes) -> List[Tuple[str, int, int]]:
        try:
            with tarfile.open(fileobj=io.BytesIO(context), mode="r") as tar:
                return [(member.name, member.size, member.mode) for member in tar.getmembers()]
        except tarfile.TarError as exc:
            raise PackingError(f"Invalid build context archive: {exc}") from exc
