"""Static registry of object storage regions.

The registry maps a region identifier to the endpoint that storage clients
for that region must talk to. It is built once from settings and never
changes afterwards.
"""

from dataclasses import dataclass

from storage_console.config import Settings, settings


@dataclass(frozen=True)
class Region:
    """A storage region and its endpoint."""

    id: str
    display_name: str
    endpoint: str


class RegionRegistry:
    """Lookup of configured regions, with a default region fallback."""

    def __init__(self, regions: list[Region], default_region_id: str):
        self._regions: dict[str, Region] = {}
        for region in regions:
            if region.id in self._regions:
                raise ValueError(f"Duplicate region id: {region.id}")
            self._regions[region.id] = region

        if default_region_id not in self._regions:
            raise ValueError(f"Default region {default_region_id} is not configured")
        self.default_region_id = default_region_id

    @property
    def default_region(self) -> Region:
        return self._regions[self.default_region_id]

    def resolve_endpoint(self, region_id: str | None) -> str:
        """Return the endpoint for a region, or the default region's endpoint."""
        region = self._regions.get(region_id) if region_id else None
        if region is None:
            return self.default_region.endpoint
        return region.endpoint

    def is_valid_region(self, region_id: str | None) -> bool:
        return region_id in self._regions

    def list_regions(self) -> list[Region]:
        """All regions in declaration order."""
        return list(self._regions.values())


def build_region_registry(config: Settings) -> RegionRegistry:
    """Create the registry from the configured endpoints."""
    return RegionRegistry(
        [
            Region("eu-west-2", "Europe Ouest 2 (Paris)", config.s3_endpoint_eu_west_2),
            Region("us-east-2", "US Est 2 (Ohio)", config.s3_endpoint_us_east_2),
            Region("us-west-1", "US Ouest 1 (Californie)", config.s3_endpoint_us_west_1),
            Region(
                "cloudgouv-eu-west-1",
                "Cloud Gouvernemental",
                config.s3_endpoint_cloudgouv_eu_west_1,
            ),
            Region(
                "ap-northeast-1",
                "Asie Pacifique Nord-Est (Tokyo)",
                config.s3_endpoint_ap_northeast_1,
            ),
        ],
        default_region_id=config.default_region,
    )


# Global registry instance
region_registry = build_region_registry(settings)
