"""CPU throttling through Emulation.setCPUThrottlingRate (Chromium only)."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from perfgate.core.exceptions import ConfigurationError
from perfgate.features.handles import ManagedResettableHandle
from perfgate.features.types import Capability, FeatureName, FeatureState
from perfgate.features.utils import open_feature_session

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


@dataclass
class CPUThrottlingConfig:
    """`rate` is the slowdown factor: 4 means 4x slower. 1 disables throttling."""

    rate: float


@dataclass
class CPUThrottlingState(FeatureState):
    rate: float = 1


async def _apply_rate(state: CPUThrottlingState) -> None:
    await state.session.send("Emulation.setCPUThrottlingRate", {"rate": state.rate})


async def _restore_rate(state: CPUThrottlingState) -> None:
    await state.session.send("Emulation.setCPUThrottlingRate", {"rate": 1})
    logger.info("[CPUThrottling] Throttling removed")


class CPUThrottlingFeature:
    """
    Slows the renderer's CPU by a fixed factor for the whole test.

    Navigation can drop the emulation, so reset re-applies the rate between
    iterations rather than clearing anything.
    """

    name = FeatureName.CPU_THROTTLING.value
    requires_capability = Capability.CHROMIUM_ONLY

    async def start(
        self,
        page: "Page",
        options: CPUThrottlingConfig,
    ) -> Optional[ManagedResettableHandle[CPUThrottlingState, None]]:
        if options.rate < 1:
            raise ConfigurationError(
                f"CPU throttle rate must be >= 1, got {options.rate}",
                context={"rate": options.rate},
            )
        if options.rate == 1:
            logger.debug("[CPUThrottling] Rate 1x, nothing to apply")
            return None

        async def setup(session) -> None:
            await session.send("Emulation.setCPUThrottlingRate", {"rate": options.rate})

        session = await open_feature_session(page, self.name, setup)
        if session is None:
            return None

        logger.info(f"[CPUThrottling] Applied {options.rate}x CPU slowdown")
        state = CPUThrottlingState(page=page, session=session, rate=options.rate)
        return ManagedResettableHandle(
            self.name,
            state,
            on_stop=_stop,
            on_reset=_apply_rate,
        )


async def _stop(state: CPUThrottlingState) -> None:
    await _restore_rate(state)
    return None


cpu_throttling_feature = CPUThrottlingFeature()
