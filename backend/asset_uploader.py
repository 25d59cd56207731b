"""
Asset Uploader

Uploads the files an artboard needs, one at a time with a fixed pause after
each upload to stay under the host's rate limits. Missing files and failed
uploads are recorded, never raised; elements that depend on them are skipped
by the compiler later.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Callable, Awaitable, Optional

from asset_index import AssetIndex, mime_type_for
from errors import AssetMissingError, UploadFailureError, ImporterError
from layout_models import LayoutObject, ObjectType

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_DELAY = 0.5

Sleep = Callable[[float], Awaitable[None]]
UploadFn = Callable[[bytes, str], Awaitable[str]]
ProgressFn = Callable[[int, int], Awaitable[None]]


def required_files(objects: Sequence[LayoutObject]) -> List[str]:
    """De-duplicated file names referenced by the objects, in first-seen order."""
    names: Dict[str, None] = {}

    def add(name: Optional[str]) -> None:
        if name:
            names.setdefault(name, None)

    for obj in objects:
        if obj.type in (ObjectType.IMAGE_VECTOR, ObjectType.IMAGE_RASTER, ObjectType.OTHER):
            add(obj.file_name)
        elif obj.type == ObjectType.TEXT and obj.text_data is None:
            # Compiled as a plain image
            add(obj.file_name)
        add(obj.text_svg_file_name)
        if obj.type == ObjectType.MASKED_CONTENT:
            add(obj.file_name)
            add(obj.content_file_name)
            add(obj.stroke_file_name)
    return list(names)


@dataclass
class UploadReport:
    requested: List[str] = field(default_factory=list)
    refs: Dict[str, str] = field(default_factory=dict)
    failures: List[ImporterError] = field(default_factory=list)

    @property
    def uploaded_count(self) -> int:
        return len(self.refs)


class AssetUploader:
    def __init__(self, upload: UploadFn, index: AssetIndex, delay: float = DEFAULT_UPLOAD_DELAY, sleep: Sleep = asyncio.sleep):
        self.upload = upload
        self.index = index
        self.delay = delay
        self.sleep = sleep

    async def upload_all(self, artboard_name: str, file_names: Sequence[str], progress: Optional[ProgressFn] = None) -> UploadReport:
        report = UploadReport(requested=list(file_names))
        total = len(file_names)
        logger.info(f"📤 Uploading {total} file(s) for '{artboard_name}'...")

        for i, file_name in enumerate(file_names, start=1):
            if progress is not None:
                await progress(i, total)

            path = self.index.find(artboard_name, file_name)
            if path is None:
                error = AssetMissingError(f"File not found: {file_name}", {"file_name": file_name, "artboard": artboard_name})
                logger.warning(f"⚠️ {error.message} (artboard: {artboard_name})")
                report.failures.append(error)
                continue

            try:
                data = await asyncio.to_thread(path.read_bytes)
                report.refs[file_name] = await self.upload(data, mime_type_for(file_name))
            except Exception as e:
                error = UploadFailureError(f"Upload failed: {file_name}: {e}", {"file_name": file_name})
                logger.error(f"❌ {error.message}")
                report.failures.append(error)
            await self.sleep(self.delay)

        logger.info(f"📤 Uploaded {report.uploaded_count}/{total}")
        return report
