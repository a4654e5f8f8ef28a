"""
Unit tests for archive export.
"""

import json
import logging
import zipfile
import pytest
from io import BytesIO

from quiz_builder.archive.exporter import export_archive, write_archive
from quiz_builder.config import ArchiveConfig
from quiz_builder.core.models.manifest import Manifest, PageRef
from quiz_builder.core.models.pages import PageContent
from quiz_builder.core.models.questions import Option, Question, QuestionType
from quiz_builder.core.schemas.validator import ARCHIVE_SCHEMA_VERSION
from quiz_builder.storage.assets import AssetStore


def read_json(zf: zipfile.ZipFile, name: str):
    return json.loads(zf.read(name).decode("utf-8"))


@pytest.fixture
def assets() -> AssetStore:
    return AssetStore()


@pytest.fixture
def pages(assets, png_bytes, jpeg_bytes):
    return [
        PageContent(
            id="page-1",
            title="Page 1",
            questions=(
                Question(
                    "q1",
                    QuestionType.SINGLE_SELECT,
                    "2+2?",
                    (Option("o1", "4"), Option("o2", "5")),
                    image=assets.register(png_bytes),
                ),
            ),
            answers={"q1": ["o1"]},
        ),
        PageContent(
            id="page-2",
            title="Page 2",
            time_limit=5,
            questions=(Question("q2", QuestionType.FILL_IN_BLANK, "Capital?", image=assets.register(jpeg_bytes)),),
            answers={"q2": ["Paris"]},
        ),
    ]


@pytest.fixture
def manifest() -> Manifest:
    return Manifest(
        name="Geo",
        description="Capitals",
        global_time_limit=30,
        page_order=(PageRef("page-1", "Page 1"), PageRef("page-2", "Page 2")),
    )


class TestExportArchive:
    """Archive layout and records."""

    def test_layout(self, manifest, pages, assets):
        data = export_archive(manifest, pages, assets)

        with zipfile.ZipFile(BytesIO(data)) as zf:
            names = set(zf.namelist())

        assert names == {
            "quiz/manifest.json",
            "quiz/page_page-1/page_config.json",
            "quiz/page_page-1/answers.json",
            "quiz/page_page-1/assets/q1.png",
            "quiz/page_page-2/page_config.json",
            "quiz/page_page-2/answers.json",
            "quiz/page_page-2/assets/q2.jpg",
        }

    def test_manifest_record(self, manifest, pages, assets):
        with zipfile.ZipFile(BytesIO(export_archive(manifest, pages, assets))) as zf:
            record = read_json(zf, "quiz/manifest.json")

        assert record["name"] == "Geo"
        assert record["description"] == "Capitals"
        assert record["globalTimeLimit"] == 30
        assert record["pageTimeLimit"] is None
        assert record["totalPages"] == 2
        assert record["totalQuestions"] == 2
        assert record["schemaVersion"] == ARCHIVE_SCHEMA_VERSION
        assert record["pageOrder"][1] == {
            "id": "page-2",
            "title": "Page 2",
            "configFile": "page_page-2/page_config.json",
            "answersFile": "page_page-2/answers.json",
        }

    def test_page_records(self, manifest, pages, assets, png_bytes):
        with zipfile.ZipFile(BytesIO(export_archive(manifest, pages, assets))) as zf:
            config = read_json(zf, "quiz/page_page-1/page_config.json")
            answers = read_json(zf, "quiz/page_page-1/answers.json")
            image = zf.read("quiz/page_page-1/assets/q1.png")
            config2 = read_json(zf, "quiz/page_page-2/page_config.json")

        assert config["id"] == "page-1"
        assert config["questions"][0]["image"] == "assets/q1.png"
        assert config["questions"][0]["options"] == [{"id": "o1", "text": "4"}, {"id": "o2", "text": "5"}]
        assert "answers" not in config
        assert answers == {"q1": ["o1"]}
        assert image == png_bytes
        assert config2["timeLimit"] == 5
        assert "options" not in config2["questions"][0]

    def test_unresolvable_image_is_nulled(self, manifest, pages, assets, caplog):
        handle = pages[0].questions[0].image
        assets.release(handle)

        with caplog.at_level(logging.WARNING):
            data = export_archive(manifest, pages, assets)

        with zipfile.ZipFile(BytesIO(data)) as zf:
            config = read_json(zf, "quiz/page_page-1/page_config.json")
            names = zf.namelist()

        assert config["questions"][0]["image"] is None
        assert "quiz/page_page-1/assets/q1.png" not in names
        assert "q1" in caplog.text

    def test_page_ids_that_sanitise_alike_get_distinct_folders(self, assets):
        pages = [PageContent("a/b"), PageContent("a_b")]
        manifest = Manifest(page_order=(PageRef("a/b"), PageRef("a_b")))

        with zipfile.ZipFile(BytesIO(export_archive(manifest, pages, assets))) as zf:
            record = read_json(zf, "quiz/manifest.json")

        files = [ref["configFile"] for ref in record["pageOrder"]]
        assert files == ["page_a_b/page_config.json", "page_a_b-2/page_config.json"]

    def test_pages_are_consumed_lazily(self, manifest, assets):
        seen = []

        def generate():
            for pid in ("page-1", "page-2"):
                seen.append(pid)
                yield PageContent(pid)

        export_archive(manifest, generate(), assets)
        assert seen == ["page-1", "page-2"]

    def test_write_archive_to_path(self, manifest, pages, assets, tmp_path):
        out = tmp_path / "quiz.zip"

        stats = write_archive(manifest, pages, assets, out)

        assert zipfile.is_zipfile(out)
        assert (stats.pages, stats.questions, stats.images, stats.dropped_images) == (2, 2, 2, 0)

    def test_custom_root_folder_and_compression(self, manifest, pages, assets):
        config = ArchiveConfig(root_folder="export", compression=zipfile.ZIP_STORED, json_indent=None)

        with zipfile.ZipFile(BytesIO(export_archive(manifest, pages, assets, config=config))) as zf:
            info = zf.getinfo("export/manifest.json")
            raw = zf.read("export/manifest.json").decode("utf-8")

        assert info.compress_type == zipfile.ZIP_STORED
        assert "\n" not in raw

    def test_empty_document(self, assets):
        with zipfile.ZipFile(BytesIO(export_archive(Manifest(), [], assets))) as zf:
            record = read_json(zf, "quiz/manifest.json")
        assert record["pageOrder"] == []
        assert record["totalQuestions"] == 0
