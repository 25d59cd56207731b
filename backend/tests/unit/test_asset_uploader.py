"""
Asset upload tests
"""

import asyncio
import threading
from pathlib import Path

from asset_index import AssetIndex
from asset_uploader import AssetUploader, required_files
from conftest import POSTER_OBJECTS, write_artboard
from errors import AssetMissingError, UploadFailureError
from layout_models import LayoutObject


def test_required_files_deduplicated_in_order():
    objects = [LayoutObject.model_validate(o) for o in POSTER_OBJECTS]
    objects.append(LayoutObject.model_validate({"index": 4, "fileName": "bg.png", "type": "png"}))
    assert required_files(objects) == [
        "bg.png", "title_text.svg", "avatar_clipped.png", "avatar_content.png", "avatar_stroke.png", "caption_text.svg",
    ]


def test_text_without_text_data_needs_its_own_file():
    obj = LayoutObject.model_validate({"index": 0, "fileName": "label.svg", "type": "text"})
    assert required_files([obj]) == ["label.svg"]


class TestUploadAll:
    def test_uploads_with_pause_after_each(self, export_folder, platform, sleeper):
        uploader = AssetUploader(platform.upload_asset, AssetIndex.scan(export_folder), delay=0.5, sleep=sleeper)
        report = asyncio.run(uploader.upload_all("Poster", ["bg.png", "title_text.svg"]))

        assert report.refs == {"bg.png": "asset-1", "title_text.svg": "asset-2"}
        assert platform.uploads == ["image/png", "image/svg+xml"]
        assert sleeper.calls == [0.5, 0.5]
        assert report.failures == []

    def test_missing_file_recorded_without_pause(self, export_folder, platform, sleeper):
        uploader = AssetUploader(platform.upload_asset, AssetIndex.scan(export_folder), sleep=sleeper)
        report = asyncio.run(uploader.upload_all("Poster", ["nope.png", "bg.png"]))

        assert list(report.refs) == ["bg.png"]
        assert isinstance(report.failures[0], AssetMissingError)
        assert report.failures[0].details["file_name"] == "nope.png"
        assert sleeper.calls == [0.5]

    def test_failed_upload_recorded_and_continues(self, tmp_path, platform, sleeper):
        write_artboard(tmp_path, "A", [], {"bad.png": b"FAIL", "good.png": b"ok"})
        uploader = AssetUploader(platform.upload_asset, AssetIndex.scan(tmp_path), sleep=sleeper)
        report = asyncio.run(uploader.upload_all("A", ["bad.png", "good.png"]))

        assert list(report.refs) == ["good.png"]
        assert isinstance(report.failures[0], UploadFailureError)
        assert report.failures[0].code == "upload_failed"
        assert len(sleeper.calls) == 2

    def test_progress_reported_per_file(self, export_folder, platform, sleeper):
        seen = []

        async def progress(done, total):
            seen.append((done, total))

        uploader = AssetUploader(platform.upload_asset, AssetIndex.scan(export_folder), sleep=sleeper)
        asyncio.run(uploader.upload_all("Poster", ["bg.png", "title_text.svg"], progress))
        assert seen == [(1, 2), (2, 2)]


def test_unknown_object_type_needs_its_own_file():
    obj = LayoutObject.model_validate({"index": 0, "fileName": "badge.png", "type": "group"})
    assert required_files([obj]) == ["badge.png"]


def test_files_are_read_off_the_event_loop(export_folder, platform, sleeper, monkeypatch):
    loop_thread = threading.get_ident()
    reader_threads = []
    read_bytes = Path.read_bytes

    def recording_read(self):
        reader_threads.append(threading.get_ident())
        return read_bytes(self)

    monkeypatch.setattr(Path, "read_bytes", recording_read)
    uploader = AssetUploader(platform.upload_asset, AssetIndex.scan(export_folder), sleep=sleeper)
    report = asyncio.run(uploader.upload_all("Poster", ["bg.png"]))

    assert report.refs == {"bg.png": "asset-1"}
    assert reader_threads and loop_thread not in reader_threads
