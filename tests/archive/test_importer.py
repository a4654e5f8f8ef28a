"""
Unit tests for archive import.

Archives are assembled by hand so each failure mode can be injected.
"""

import json
import logging
import zipfile
import pytest
from io import BytesIO
from pathlib import Path

from quiz_builder.archive.importer import import_archive
from quiz_builder.core.errors import ArchiveFormatError
from quiz_builder.core.models.questions import QuestionType
from quiz_builder.storage.assets import AssetStore, is_ephemeral
from quiz_builder.storage.page_cache import PageCache


def make_zip(entries: dict, compression: int = zipfile.ZIP_STORED) -> bytes:
    """Build an archive from {name: dict | str | bytes}."""
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w", compression=compression) as zf:
        for name, content in entries.items():
            if isinstance(content, (dict, list)):
                content = json.dumps(content)
            zf.writestr(name, content)
    return buf.getvalue()


def corrupt_entry(data: bytes, name: str) -> bytes:
    """Overwrite the compressed bytes of one entry so inflating it fails."""
    with zipfile.ZipFile(BytesIO(data)) as zf:
        info = zf.getinfo(name)
    buf = bytearray(data)
    header = info.header_offset
    name_len = int.from_bytes(buf[header + 26:header + 28], "little")
    extra_len = int.from_bytes(buf[header + 28:header + 30], "little")
    start = header + 30 + name_len + extra_len
    # 0xff starts a deflate block of the reserved type 3
    buf[start:start + info.compress_size] = b"\xff" * info.compress_size
    return bytes(buf)


def page_entry(page_id: str, title: str = "") -> dict:
    return {
        "id": page_id,
        "title": title,
        "configFile": f"page_{page_id}/page_config.json",
        "answersFile": f"page_{page_id}/answers.json",
    }


def select_question(qid: str, option_ids=("o1", "o2"), image=None) -> dict:
    return {
        "id": qid,
        "type": "multiple-choice",
        "text": f"Question {qid}",
        "options": [{"id": o, "text": o.upper()} for o in option_ids],
        "image": image,
    }


def two_page_archive(**overrides) -> dict:
    entries = {
        "quiz/manifest.json": {
            "name": "Quiz",
            "description": "",
            "pageTimeLimit": 10,
            "schemaVersion": 2,
            "pageOrder": [page_entry("page-1", "One"), page_entry("page-2", "Two")],
        },
        "quiz/page_page-1/page_config.json": {"id": "page-1", "title": "One", "questions": [select_question("q1")]},
        "quiz/page_page-1/answers.json": {"q1": ["o1"]},
        "quiz/page_page-2/page_config.json": {"id": "page-2", "title": "Two", "questions": [select_question("q2")]},
        "quiz/page_page-2/answers.json": {"q2": ["o2"]},
    }
    entries.update(overrides)
    return {k: v for k, v in entries.items() if v is not None}


@pytest.fixture
def assets() -> AssetStore:
    return AssetStore()


@pytest.fixture
def cache(tmp_path: Path) -> PageCache:
    return PageCache(tmp_path / "pages")


def run_import(entries: dict, assets, cache):
    return import_archive(make_zip(entries), assets=assets, page_cache=cache)


class TestImportArchive:
    """Happy path."""

    def test_first_page_returned_others_cached(self, assets, cache):
        result = run_import(two_page_archive(), assets, cache)

        assert result.manifest.page_ids == ("page-1", "page-2")
        assert result.manifest.active_page == "page-1"
        assert result.manifest.total_pages == 2
        assert result.manifest.total_questions == 2
        assert result.manifest.page_time_limit == 10
        assert result.active_page.question_ids == ("q1",)
        assert result.active_page.answers == {"q1": ["o1"]}
        assert result.skipped_pages == ()
        assert cache.get("page-1") is None
        assert cache.get("page-2")["answers"] == {"q2": ["o2"]}

    def test_archive_paths_are_not_kept_in_manifest(self, assets, cache):
        result = run_import(two_page_archive(), assets, cache)
        assert all(ref.config_file == "" and ref.answers_file == "" for ref in result.manifest.page_order)

    def test_images_become_session_handles(self, assets, cache, png_bytes):
        entries = two_page_archive(**{
            "quiz/page_page-1/page_config.json": {
                "id": "page-1",
                "questions": [select_question("q1", image="assets/q1.png")],
            },
            "quiz/page_page-1/assets/q1.png": png_bytes,
        })

        result = run_import(entries, assets, cache)

        image = result.active_page.get_question("q1").image
        assert is_ephemeral(image)
        assert assets.read(image) == png_bytes

    def test_stale_cache_entries_are_removed(self, assets, cache):
        cache.put("old-page", {"questions": []})
        cache.put("page-1", {"questions": []})

        run_import(two_page_archive(), assets, cache)

        assert sorted(cache.page_ids()) == ["page-2"]

    def test_path_source(self, assets, cache, tmp_path):
        path = tmp_path / "quiz.zip"
        path.write_bytes(make_zip(two_page_archive()))

        result = import_archive(path, assets=assets, page_cache=cache)

        assert result.manifest.name == "Quiz"


class TestImportFailures:
    """Archive-level and page-level failures."""

    def test_missing_manifest_raises_without_touching_cache(self, assets, cache):
        cache.put("keep", {"questions": []})
        entries = two_page_archive(**{"quiz/manifest.json": None})

        with pytest.raises(ArchiveFormatError, match="Missing manifest"):
            run_import(entries, assets, cache)

        assert cache.page_ids() == ["keep"]
        assert len(assets) == 0

    def test_not_a_zip_raises(self, assets, cache):
        with pytest.raises(ArchiveFormatError):
            import_archive(b"plain text", assets=assets, page_cache=cache)

    def test_manifest_not_json_raises(self, assets, cache):
        with pytest.raises(ArchiveFormatError, match="Unreadable"):
            run_import(two_page_archive(**{"quiz/manifest.json": "{oops"}), assets, cache)

    def test_manifest_without_page_order_raises(self, assets, cache):
        with pytest.raises(ArchiveFormatError, match="Invalid"):
            run_import(two_page_archive(**{"quiz/manifest.json": {"name": "x"}}), assets, cache)

    def test_duplicate_page_ids_raise(self, assets, cache):
        manifest = {"pageOrder": [page_entry("page-1"), page_entry("page-1")]}
        with pytest.raises(ArchiveFormatError, match="duplicate page ids"):
            run_import(two_page_archive(**{"quiz/manifest.json": manifest}), assets, cache)

    def test_missing_page_config_skips_that_page(self, assets, cache, caplog):
        entries = two_page_archive(**{"quiz/page_page-2/page_config.json": None})

        with caplog.at_level(logging.WARNING):
            result = run_import(entries, assets, cache)

        assert result.manifest.page_ids == ("page-1", "page-2")
        assert result.active_page.question_ids == ("q1",)
        assert result.active_page.answers == {"q1": ["o1"]}
        assert result.skipped_pages == ("page-2",)
        assert cache.get("page-2")["questions"] == []
        assert "page-2" in caplog.text

    def test_malformed_answers_skip_that_page(self, assets, cache):
        entries = two_page_archive(**{"quiz/page_page-2/answers.json": "{broken"})

        result = run_import(entries, assets, cache)

        assert result.skipped_pages == ("page-2",)

    def test_answers_with_wrong_shape_skip_that_page(self, assets, cache):
        entries = two_page_archive(**{"quiz/page_page-2/answers.json": {"q2": "o2"}})
        assert run_import(entries, assets, cache).skipped_pages == ("page-2",)

    def test_missing_answers_mean_no_answers(self, assets, cache):
        entries = two_page_archive(**{"quiz/page_page-1/answers.json": None})

        result = run_import(entries, assets, cache)

        assert result.skipped_pages == ()
        assert result.active_page.answers == {}

    def test_invalid_answers_are_pruned(self, assets, cache):
        entries = two_page_archive(**{"quiz/page_page-1/answers.json": {"q1": ["o1", "o2"], "ghost": ["x"]}})

        result = run_import(entries, assets, cache)

        assert result.active_page.answers == {}
        assert result.skipped_pages == ()

    def test_invalid_question_skips_page(self, assets, cache):
        bad = {"id": "page-2", "questions": [select_question("q2", option_ids=("only",))]}
        result = run_import(two_page_archive(**{"quiz/page_page-2/page_config.json": bad}), assets, cache)
        assert result.skipped_pages == ("page-2",)

    def test_question_id_reused_on_later_page_skips_it(self, assets, cache):
        clash = {"id": "page-2", "questions": [select_question("q1")]}

        result = run_import(two_page_archive(**{"quiz/page_page-2/page_config.json": clash}), assets, cache)

        assert result.skipped_pages == ("page-2",)
        assert result.manifest.total_questions == 1

    def test_duplicate_question_ids_within_page_skip_it(self, assets, cache):
        dup = {"id": "page-2", "questions": [select_question("q2"), select_question("q2")]}
        result = run_import(two_page_archive(**{"quiz/page_page-2/page_config.json": dup}), assets, cache)
        assert result.skipped_pages == ("page-2",)

    def test_missing_image_is_nulled(self, assets, cache, caplog):
        config = {"id": "page-1", "questions": [select_question("q1", image="assets/q1.png")]}

        with caplog.at_level(logging.WARNING):
            result = run_import(two_page_archive(**{"quiz/page_page-1/page_config.json": config}), assets, cache)

        assert result.active_page.get_question("q1").image is None
        assert result.skipped_pages == ()
        assert "missing" in caplog.text

    def test_image_path_escaping_archive_is_nulled(self, assets, cache, png_bytes):
        config = {"id": "page-1", "questions": [select_question("q1", image="../../evil.png")]}
        entries = two_page_archive(**{"quiz/page_page-1/page_config.json": config, "evil.png": png_bytes})

        result = run_import(entries, assets, cache)

        assert result.active_page.get_question("q1").image is None
        assert len(assets) == 0

    def test_manifest_id_wins_over_config_id(self, assets, cache):
        config = {"id": "something-else", "questions": [select_question("q1")]}
        result = run_import(two_page_archive(**{"quiz/page_page-1/page_config.json": config}), assets, cache)
        assert result.active_page.id == "page-1"

    def test_corrupt_image_entry_is_nulled(self, assets, cache, png_bytes, caplog):
        entries = two_page_archive(**{
            "quiz/page_page-1/page_config.json": {
                "id": "page-1",
                "questions": [select_question("q1", image="assets/q1.png")],
            },
            "quiz/page_page-1/assets/q1.png": png_bytes,
        })
        data = corrupt_entry(make_zip(entries, zipfile.ZIP_DEFLATED), "quiz/page_page-1/assets/q1.png")

        with caplog.at_level(logging.WARNING):
            result = import_archive(data, assets=assets, page_cache=cache)

        assert result.skipped_pages == ()
        assert result.active_page.get_question("q1").image is None
        assert len(assets) == 0
        assert "unreadable" in caplog.text

    def test_corrupt_page_config_entry_skips_that_page(self, assets, cache):
        data = corrupt_entry(
            make_zip(two_page_archive(), zipfile.ZIP_DEFLATED),
            "quiz/page_page-2/page_config.json",
        )

        result = import_archive(data, assets=assets, page_cache=cache)

        assert result.skipped_pages == ("page-2",)
        assert result.active_page.answers == {"q1": ["o1"]}
        assert cache.get("page-2")["questions"] == []

    def test_corrupt_manifest_entry_raises_format_error(self, assets, cache):
        cache.put("keep", {"questions": []})
        data = corrupt_entry(make_zip(two_page_archive(), zipfile.ZIP_DEFLATED), "quiz/manifest.json")

        with pytest.raises(ArchiveFormatError, match="Unreadable"):
            import_archive(data, assets=assets, page_cache=cache)

        assert cache.page_ids() == ["keep"]

    def test_non_integer_schema_version_is_tolerated(self, assets, cache, caplog):
        entries = two_page_archive()
        entries["quiz/manifest.json"] = {**entries["quiz/manifest.json"], "schemaVersion": "2"}

        with caplog.at_level(logging.WARNING):
            result = run_import(entries, assets, cache)

        assert result.manifest.page_ids == ("page-1", "page-2")
        assert "schema version '2'" in caplog.text


class TestLegacyArchives:
    """Older layouts still import."""

    def test_manifest_at_zip_root(self, assets, cache):
        entries = {
            "manifest.json": {"name": "Old", "pageOrder": [{"id": "page-1", "configFile": "page_page-1/page_config.json"}]},
            "page_page-1/page_config.json": {"id": "page-1", "questions": [select_question("q1")]},
            "page_page-1/answers.json": {"q1": ["o2"]},
        }

        result = run_import(entries, assets, cache)

        assert result.manifest.name == "Old"
        assert result.active_page.answers == {"q1": ["o2"]}

    def test_combined_page_record_without_config_file(self, assets, cache):
        entries = {
            "quiz/manifest.json": {"pageOrder": [{"id": "page-1", "title": "One"}]},
            "quiz/pages/page-1.json": {
                "questions": [{"id": "q1", "type": QuestionType.FILL_IN_BLANK.value, "text": "?"}],
                "answers": {"q1": ["Paris"]},
            },
        }

        result = run_import(entries, assets, cache)

        assert result.skipped_pages == ()
        assert result.active_page.title == "One"
        assert result.active_page.answers == {"q1": ["Paris"]}

    def test_empty_page_order(self, assets, cache):
        result = run_import({"quiz/manifest.json": {"pageOrder": []}}, assets, cache)
        assert result.active_page is None
        assert result.manifest.total_pages == 0
