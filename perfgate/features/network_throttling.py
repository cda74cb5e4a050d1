"""
Network throttling through Network.emulateNetworkConditions (Chromium only).

Usage:
    conditions = resolve_network_conditions(NetworkPreset.SLOW_3G)
    handle = await registry.start_feature("network-throttling", page, NetworkPreset.FAST_4G)
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from perfgate.core.formatters import format_throughput
from perfgate.core.models import NetworkConditions, NetworkPreset
from perfgate.features.handles import ManagedResettableHandle
from perfgate.features.types import Capability, FeatureName, FeatureState
from perfgate.features.utils import open_feature_session

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)

# Throughput in bytes/second
NETWORK_PRESETS: Dict[NetworkPreset, NetworkConditions] = {
    NetworkPreset.SLOW_3G: NetworkConditions(
        latency=400,
        download_throughput=500 * 1024 / 8,
        upload_throughput=500 * 1024 / 8,
    ),
    NetworkPreset.FAST_3G: NetworkConditions(
        latency=150,
        download_throughput=1.6 * 1024 * 1024 / 8,
        upload_throughput=750 * 1024 / 8,
    ),
    NetworkPreset.SLOW_4G: NetworkConditions(
        latency=100,
        download_throughput=3 * 1024 * 1024 / 8,
        upload_throughput=1.5 * 1024 * 1024 / 8,
    ),
    NetworkPreset.FAST_4G: NetworkConditions(
        latency=20,
        download_throughput=10 * 1024 * 1024 / 8,
        upload_throughput=5 * 1024 * 1024 / 8,
    ),
    NetworkPreset.OFFLINE: NetworkConditions(
        latency=0,
        download_throughput=0,
        upload_throughput=0,
        offline=True,
    ),
}

NetworkThrottlingConfig = Union[NetworkPreset, str, NetworkConditions]


@dataclass(frozen=True)
class ResolvedNetworkConditions:
    latency: float
    download_throughput: float
    upload_throughput: float
    offline: bool
    source: str  # preset name or "custom"

    def to_cdp(self) -> Dict[str, Any]:
        return {
            "offline": self.offline,
            "latency": self.latency,
            "downloadThroughput": self.download_throughput,
            "uploadThroughput": self.upload_throughput,
        }


def resolve_network_conditions(config: NetworkThrottlingConfig) -> ResolvedNetworkConditions:
    """Turn a preset name or custom conditions into concrete CDP parameters."""
    if isinstance(config, NetworkConditions):
        conditions, source = config, "custom"
    else:
        preset = NetworkPreset(config)
        conditions, source = NETWORK_PRESETS[preset], preset.value
    return ResolvedNetworkConditions(
        latency=conditions.latency,
        download_throughput=conditions.download_throughput,
        upload_throughput=conditions.upload_throughput,
        offline=conditions.offline,
        source=source,
    )


def format_network_conditions(conditions: ResolvedNetworkConditions) -> str:
    """e.g. "slow-3g: 400ms latency, down=500 Kbps, up=500 Kbps"."""
    if conditions.offline:
        return "offline"
    prefix = f"{conditions.source}: " if conditions.source != "custom" else ""
    return (
        f"{prefix}{conditions.latency:g}ms latency, "
        f"down={format_throughput(conditions.download_throughput)}, "
        f"up={format_throughput(conditions.upload_throughput)}"
    )


@dataclass
class NetworkThrottlingState(FeatureState):
    conditions: Optional[ResolvedNetworkConditions] = None


_UNTHROTTLED = {"offline": False, "latency": 0, "downloadThroughput": -1, "uploadThroughput": -1}


async def _apply(state: NetworkThrottlingState) -> None:
    await state.session.send("Network.emulateNetworkConditions", state.conditions.to_cdp())


async def _stop(state: NetworkThrottlingState) -> None:
    await state.session.send("Network.emulateNetworkConditions", _UNTHROTTLED)
    logger.info("[NetworkThrottling] Throttling removed")
    return None


class NetworkThrottlingFeature:
    name = FeatureName.NETWORK_THROTTLING.value
    requires_capability = Capability.CHROMIUM_ONLY

    async def start(
        self,
        page: "Page",
        options: NetworkThrottlingConfig,
    ) -> Optional[ManagedResettableHandle[NetworkThrottlingState, None]]:
        conditions = resolve_network_conditions(options)

        async def setup(session) -> None:
            await session.send("Network.emulateNetworkConditions", conditions.to_cdp())

        session = await open_feature_session(page, self.name, setup)
        if session is None:
            return None

        logger.info(f"[NetworkThrottling] Enabled ({format_network_conditions(conditions)})")
        state = NetworkThrottlingState(page=page, session=session, conditions=conditions)
        return ManagedResettableHandle(self.name, state, on_stop=_stop, on_reset=_apply)


network_throttling_feature = NetworkThrottlingFeature()
