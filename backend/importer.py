"""
Artboard Importer

Runs one artboard through the pipeline:

1. upload every referenced file (sequential, rate limited)
2. resolve every distinct font family (may wait for a human decision)
3. compile objects into page elements
4. create the page (retrying on rate limits)
5. correct element opacity in an editing session

"Import all" processes artboards strictly one after another with a pause
in between. A fatal page-creation error fails that artboard only.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from asset_index import AssetIndex
from asset_uploader import AssetUploader, required_files
from errors import PageCreationError
from font_catalog import is_font_reference
from font_resolver import FontResolver
from importer_config import ImporterSettings
from layout_models import Layout, ObjectType
from opacity_pass import OpacityReport, apply_opacity_corrections
from page_creator import create_page_with_retry
from platform_client import PlatformClient
from scene_compiler import SceneCompiler, SkippedObject

logger = logging.getLogger(__name__)

STATUS_SUCCEEDED = "succeeded"
STATUS_FAILED = "failed"

ProgressFn = Callable[[str, str, int], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class ArtboardReport:
    artboard_name: str
    status: str = "pending"
    requested_files: int = 0
    uploaded_files: int = 0
    upload_failures: List[str] = field(default_factory=list)
    fonts: Dict[str, str] = field(default_factory=dict)
    element_count: int = 0
    frame_count: int = 0
    text_image_count: int = 0
    skipped: List[SkippedObject] = field(default_factory=list)
    opacity: Optional[OpacityReport] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SUCCEEDED


class ArtboardImporter:
    def __init__(
        self,
        platform: PlatformClient,
        index: AssetIndex,
        resolver: FontResolver,
        settings: ImporterSettings,
        sleep: Sleep = asyncio.sleep,
        progress: Optional[ProgressFn] = None,
    ):
        self.platform = platform
        self.index = index
        self.resolver = resolver
        self.settings = settings
        self.sleep = sleep
        self.progress = progress

    async def _report_progress(self, stage: str, message: str, percent: int) -> None:
        if self.progress is None:
            return
        try:
            await self.progress(stage, message, percent)
        except Exception as e:
            logger.debug(f"Failed to send progress update: {e}")

    async def import_artboard(self, layout: Layout) -> ArtboardReport:
        report = ArtboardReport(artboard_name=layout.artboard_name)
        objects = layout.sorted_objects()
        logger.info(f"─── {layout.artboard_name} {layout.width:g}x{layout.height:g} ({len(objects)} objects) ───")

        # 1. Uploads
        file_names = required_files(objects)

        async def upload_progress(i: int, total: int) -> None:
            await self._report_progress("upload", f"Uploading {i}/{total}", round(i / total * 50))

        uploader = AssetUploader(self.platform.upload_asset, self.index, delay=self.settings.upload_delay, sleep=self.sleep)
        uploads = await uploader.upload_all(layout.artboard_name, file_names, progress=upload_progress)
        report.requested_files = len(file_names)
        report.uploaded_files = uploads.uploaded_count
        report.upload_failures = [f.message for f in uploads.failures]

        # 2. Fonts, all resolved before any element is built
        await self._report_progress("fonts", "Resolving fonts...", 55)
        families = [
            obj.text_data.font_family
            for obj in objects
            if obj.type == ObjectType.TEXT and obj.text_data is not None and obj.text_data.font_family
        ]
        fonts = await self.resolver.resolve_all(families)
        report.fonts = {family: ("font" if is_font_reference(choice) else "image") for family, choice in fonts.items()}

        # 3. Compile
        await self._report_progress("compile", "Preparing elements...", 65)
        compiled = SceneCompiler(uploads.refs, fonts, text_width_padding=self.settings.text_width_padding).compile(objects)
        report.element_count = len(compiled.elements)
        report.frame_count = compiled.frame_count
        report.text_image_count = compiled.text_image_count
        report.skipped = list(compiled.skipped)

        # 4. Page
        await self._report_progress("page", "Creating page...", 80)
        try:
            await create_page_with_retry(
                self.platform.create_page,
                layout.artboard_name,
                layout.width,
                layout.height,
                compiled.payload(),
                base_delay=self.settings.page_retry_base_delay,
                max_attempts=self.settings.page_max_attempts,
                sleep=self.sleep,
            )
        except PageCreationError as e:
            logger.error(f"❌ Artboard '{layout.artboard_name}' failed: {e.message}")
            report.status = STATUS_FAILED
            report.error = e.message
            await self._report_progress("failed", e.message, 100)
            return report

        # 5. Opacity
        if compiled.opacity_assignments:
            await self._report_progress("opacity", "Applying transparency...", 90)
            report.opacity = await apply_opacity_corrections(
                self.platform.open_editable_session,
                compiled.opacity_assignments,
                settle_delay=self.settings.opacity_settle_delay,
                sleep=self.sleep,
            )

        report.status = STATUS_SUCCEEDED
        await self._report_progress("done", f"Done: {layout.artboard_name}", 100)
        logger.info(f"✅ Imported '{layout.artboard_name}': {report.element_count} element(s), {len(report.skipped)} skipped")
        return report

    async def import_all(self, layouts: Sequence[Layout]) -> List[ArtboardReport]:
        logger.info(f"📚 Importing {len(layouts)} artboard(s)...")
        reports: List[ArtboardReport] = []
        for i, layout in enumerate(layouts):
            reports.append(await self.import_artboard(layout))
            if i < len(layouts) - 1:
                logger.info(f"⏸️ Pausing {self.settings.artboard_pause:g}s before the next artboard")
                await self.sleep(self.settings.artboard_pause)
        done = sum(1 for r in reports if r.succeeded)
        logger.info(f"📚 {done}/{len(reports)} page(s) created")
        return reports
