import zipfile

import pytest

from miztranslate.archive import (
    MemoryArchive,
    MizArchive,
    locale_path,
    relocate,
    target_locale_path,
)
from miztranslate.errors import (
    ArchiveFormatError,
    ArchiveNotFoundError,
    MizTranslateError,
    TargetLanguageError,
)


def test_lists_and_reads_members(miz_path, mission_members):
    with MizArchive(miz_path) as archive:
        assert archive.list_entries("l10n/DEFAULT/", ".lua") == ["l10n/DEFAULT/briefing.lua"]
        assert archive.read_entry("l10n/DEFAULT/dictionary") == mission_members[
            "l10n/DEFAULT/dictionary"
        ]
        assert archive.read_entry("l10n/CN/dictionary") is None


def test_commit_adds_and_replaces_members(miz_path, mission_members):
    with MizArchive(miz_path) as archive:
        archive.write_entry("l10n/CN/dictionary", b"dictionary = {\n}")
        archive.write_entry("mission", b"mission = { [1] = 1 }")
        assert archive.list_entries("l10n/CN/") == ["l10n/CN/dictionary"]

    with zipfile.ZipFile(miz_path) as reopened:
        names = reopened.namelist()
        assert names[: len(mission_members)] == list(mission_members)
        assert names[-1] == "l10n/CN/dictionary"
        assert reopened.read("l10n/CN/dictionary") == b"dictionary = {\n}"
        assert reopened.read("mission") == b"mission = { [1] = 1 }"
        assert reopened.read("l10n/DEFAULT/briefing.lua") == mission_members[
            "l10n/DEFAULT/briefing.lua"
        ]
    assert not miz_path.with_name(miz_path.name + ".tmp").exists()


def test_failed_session_does_not_commit(miz_path):
    with pytest.raises(RuntimeError):
        with MizArchive(miz_path) as archive:
            archive.write_entry("l10n/CN/dictionary", b"partial")
            raise RuntimeError("boom")

    with zipfile.ZipFile(miz_path) as reopened:
        assert "l10n/CN/dictionary" not in reopened.namelist()


def test_closed_archive_rejects_writes(miz_path):
    archive = MizArchive(miz_path)
    archive.close(commit=False)

    with pytest.raises(MizTranslateError):
        archive.write_entry("l10n/CN/dictionary", b"")


def test_missing_and_invalid_archives(tmp_path):
    with pytest.raises(ArchiveNotFoundError):
        MizArchive(tmp_path / "missing.miz")

    broken = tmp_path / "broken.miz"
    broken.write_bytes(b"not a zip file")
    with pytest.raises(ArchiveFormatError):
        MizArchive(broken)


def test_memory_archive():
    store = MemoryArchive({"l10n/DEFAULT/a.lua": b"x", "l10n/DEFAULT/": b""})
    store.write_entry("l10n/CN/a.lua", b"y")

    assert store.list_entries("l10n/", ".lua") == ["l10n/DEFAULT/a.lua", "l10n/CN/a.lua"]
    assert store.read_entry("l10n/CN/a.lua") == b"y"


def test_locale_paths():
    assert locale_path("CN", "dictionary") == "l10n/CN/dictionary"
    assert relocate("l10n/DEFAULT/sub/a.lua", "DE") == "l10n/DE/sub/a.lua"
    with pytest.raises(MizTranslateError):
        relocate("mission", "DE")


@pytest.mark.parametrize("language_code", ["DEFAULT", "default", ""])
def test_source_locale_is_never_a_target(language_code):
    with pytest.raises(TargetLanguageError):
        relocate("l10n/DEFAULT/a.lua", language_code)
    with pytest.raises(TargetLanguageError):
        target_locale_path(language_code, "dictionary")
