"""Validation and correction helpers for Google Cloud regions and zones."""

from __future__ import annotations

GOOGLE_CLOUD_ZONES: dict[str, list[str]] = {
    "us-central1": ["us-central1-a", "us-central1-b", "us-central1-c", "us-central1-f"],
    "us-east1": ["us-east1-b", "us-east1-c", "us-east1-d"],
    "us-east4": ["us-east4-a", "us-east4-b", "us-east4-c"],
    "us-west1": ["us-west1-a", "us-west1-b", "us-west1-c"],
    "europe-west1": ["europe-west1-b", "europe-west1-c", "europe-west1-d"],
    "europe-west2": ["europe-west2-a", "europe-west2-b", "europe-west2-c"],
    "europe-west3": ["europe-west3-a", "europe-west3-b", "europe-west3-c"],
    "europe-west4": ["europe-west4-a", "europe-west4-b", "europe-west4-c"],
    "asia-east1": ["asia-east1-a", "asia-east1-b", "asia-east1-c"],
    "asia-southeast1": ["asia-southeast1-a", "asia-southeast1-b", "asia-southeast1-c"],
}

GOOGLE_CLOUD_REGIONS: list[str] = list(GOOGLE_CLOUD_ZONES)


def is_valid_region(region: str) -> bool:
    return region.strip().lower() in GOOGLE_CLOUD_ZONES


def is_valid_zone(zone: str) -> bool:
    z = zone.strip().lower()
    return any(z in zones for zones in GOOGLE_CLOUD_ZONES.values())


def region_from_zone(zone: str) -> str:
    """``europe-west1-b`` -> ``europe-west1``; empty string if unknown."""
    z = zone.strip().lower()
    region = z.rsplit("-", 1)[0] if "-" in z else ""
    return region if is_valid_region(region) else ""


def correct_region_input(value: str) -> str:
    """Normalise a region entry, mapping an accidentally typed zone to its region."""
    trimmed = value.strip().lower()
    if is_valid_zone(trimmed):
        return region_from_zone(trimmed)
    return trimmed


def validate_zone_input(value: str) -> str:
    trimmed = value.strip().lower()
    return trimmed if is_valid_zone(trimmed) else ""


def suggest_zones(region: str) -> list[str]:
    return list(GOOGLE_CLOUD_ZONES.get(region.strip().lower(), []))
