import io
import tarfile

import pytest

from pgcontainer.errors import PackingError
from pgcontainer.services.archive import ArchiveService
from pgcontainer.services.recipe import build_recipe


def _members(context: bytes):
    with tarfile.open(fileobj=io.BytesIO(context), mode="r") as tar:
        return [(member, tar.extractfile(member).read()) for member in tar.getmembers()]


def test_build_context_contains_recipe_then_dump():
    service = ArchiveService()
    recipe = build_recipe()
    payload = b"-- dump --\nCREATE TABLE t (id int);\n"

    members = _members(service.build_context(recipe, payload))

    assert [member.name for member, _ in members] == ["Dockerfile", "dump.sql"]
    dockerfile, dump = members
    assert dockerfile[0].size == len(recipe.encode("utf-8"))
    assert dockerfile[1] == recipe.encode("utf-8")
    assert dump[0].size == len(payload)
    assert dump[1] == payload


def test_build_context_sets_entry_modes():
    service = ArchiveService()

    context = service.build_context("FROM postgres\n", b"x")

    assert service.list_entries(context) == [("Dockerfile", 14, 0o600), ("dump.sql", 1, 0o777)]
    assert all(member.isreg() for member, _ in _members(context))


def test_build_context_accepts_empty_dump():
    service = ArchiveService()

    entries = service.list_entries(service.build_context("FROM postgres\n", b""))

    assert entries[1] == ("dump.sql", 0, 0o777)


def test_build_context_wraps_tar_errors(monkeypatch):
    service = ArchiveService()

    def broken_addfile(self, tarinfo, fileobj=None):
        raise tarfile.TarError("disk full")

    monkeypatch.setattr(tarfile.TarFile, "addfile", broken_addfile)

    with pytest.raises(PackingError, match="disk full"):
        service.build_context("FROM postgres\n", b"payload")


def test_list_entries_rejects_garbage():
    with pytest.raises(PackingError):
        ArchiveService().list_entries(b"not a tar archive" * 40)
