"""
License Manager for StreamClipper.

A display cache of the licensing state reported by the backend. Nothing here
is a security boundary: ``is_pro`` only drives badges and hints, the backend
performs every real entitlement check.
"""

from .base import BaseStore
from ..models import LicenseInfo
from ..state import LicenseState


# Pro features with display names, for upsell hints only
PRO_FEATURES = {
    'chat_detection': 'Chat Activity Detection',
    'vertical_crop': 'Vertical Crop (9:16)',
    'custom_keywords': 'Custom Keywords',
    'unlimited_clips': 'Unlimited Clips',
    'high_resolution': 'Up to 4K Resolution',
    'no_watermark': 'No Watermark',
    'batch_export': 'Batch Export',
    'fade_effect': 'Fade In/Out Effect',
}


def requires_pro(feature: str) -> bool:
    return feature in PRO_FEATURES


class LicenseManager(BaseStore[LicenseState]):
    """Caches the last known license status."""

    def __init__(self, dependency_container=None):
        super().__init__(LicenseState(), dependency_container)

    def set_license(self, info: LicenseInfo) -> None:
        self._set_state(LicenseState(
            is_pro=info.is_pro,
            license_key=info.license_key,
            activated_at=info.activated_at,
            is_validating=False,
        ))
        self.logger.info(f"License status: {'pro' if info.is_pro else 'free'}")

    def clear_license(self) -> None:
        self._set_state(LicenseState())

    def start_validating(self) -> None:
        self._update(is_validating=True)

    def stop_validating(self) -> None:
        self._update(is_validating=False)

    @property
    def is_pro(self) -> bool:
        return self.state.is_pro
