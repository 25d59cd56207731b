"""
Opacity Correction Pass

The host's page-creation call cannot set element transparency, so after the
page exists the importer opens an editing session on it and sets
transparency = 1 - opacity on the recorded elements, committing once at the
end. When the page cannot be edited, the assignments are returned as
instructions for the user to apply by hand.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Sequence

from errors import SessionUnavailableError
from scene_compiler import OpacityAssignment

logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY = 1.0

OpenSessionFn = Callable[[], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass
class OpacityReport:
    applied: List[int] = field(default_factory=list)
    ignored: List[int] = field(default_factory=list)
    manual_instructions: List[str] = field(default_factory=list)
    error: str | None = None

    @property
    def needs_manual_fix(self) -> bool:
        return bool(self.manual_instructions)


def manual_instructions(assignments: Sequence[OpacityAssignment]) -> List[str]:
    return [f"Element #{a.element_index}: opacity {round(a.opacity * 100)}%" for a in assignments]


async def apply_opacity_corrections(
    open_session: OpenSessionFn,
    assignments: Sequence[OpacityAssignment],
    settle_delay: float = DEFAULT_SETTLE_DELAY,
    sleep: Sleep = asyncio.sleep,
) -> OpacityReport:
    report = OpacityReport()
    if not assignments:
        return report

    logger.info(f"🌫️ Applying transparency to {len(assignments)} element(s)...")
    try:
        await sleep(settle_delay)
        try:
            session = await open_session()
        except Exception as e:
            raise SessionUnavailableError(f"Could not open an editing session: {e}") from e

        if not session.page_editable:
            raise SessionUnavailableError(
                "Page is locked or not an absolute layout",
                {"page_type": session.page_type, "locked": session.page_locked},
            )

        live = session.elements
        logger.info(f"🌫️ Session open: {len(live)} element(s) on page")
        for assignment in assignments:
            i = assignment.element_index
            if 0 <= i < len(live) and live[i].editable:
                transparency = 1 - assignment.opacity
                session.set_transparency(i, transparency)
                report.applied.append(i)
                logger.debug(f"  [{i}] transparency={round(transparency * 100)}%")
            else:
                report.ignored.append(i)

        try:
            await session.sync()
        except Exception as e:
            raise SessionUnavailableError(f"Could not commit the editing session: {e}") from e
        logger.info(f"✅ Transparency applied to {len(report.applied)} element(s)")

    except SessionUnavailableError as e:
        logger.warning(f"⚠️ {e.message}; set transparency manually:")
        report.applied.clear()
        report.ignored.clear()
        report.error = e.message
        report.manual_instructions = manual_instructions(assignments)
        for line in report.manual_instructions:
            logger.warning(f"  {line}")

    return report
