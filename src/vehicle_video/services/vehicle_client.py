"""
Async client for the vehicle catalog API.

Every call forwards the caller's Authorization header unchanged; the catalog
is scoped per country (`/{country}/vehicle/...`).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from vehicle_video.utils.config import get_settings

logger = logging.getLogger(__name__)


class VehicleClient:
    """An async wrapper around the vehicle catalog REST API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.vehicle_api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def get_vehicle(self, vehicle_id: str, *, auth_token: str, country: str) -> Dict[str, Any]:
        """
        Fetch a vehicle record.

        Returns:
            The full vehicle record (brand, model, year, exteriorColorName, ...)
        """
        client = await self._get_client()
        response = await client.get(
            f"/{country}/vehicle/{vehicle_id}",
            headers={"Authorization": auth_token, "Accept": "application/json"},
        )
        response.raise_for_status()
        vehicle = response.json()
        logger.info(f"Found vehicle {vehicle_id}: {vehicle.get('brand')} {vehicle.get('model')}")
        return vehicle

    async def get_gallery(self, vehicle_id: str, *, auth_token: str, country: str) -> List[Dict[str, Any]]:
        """
        Fetch a vehicle's gallery images.

        Returns:
            List of {"id", "url"} entries; an unexpected payload shape yields an empty list.
        """
        client = await self._get_client()
        response = await client.get(
            f"/{country}/vehicle/{vehicle_id}/images/gallery",
            headers={"Authorization": auth_token, "Accept": "*/*"},
        )
        response.raise_for_status()
        images = response.json()
        if not isinstance(images, list):
            logger.warning(f"Unexpected gallery payload for vehicle {vehicle_id}: {type(images).__name__}")
            return []
        logger.info(f"Found {len(images)} gallery images for vehicle {vehicle_id}")
        return images

    async def update_field(
        self,
        vehicle_id: str,
        field: str,
        value: Any,
        *,
        auth_token: str,
        country: str,
        create_missing: bool = False,
    ) -> Dict[str, Any]:
        """
        Update one field of a vehicle record.

        The API has no partial update, so this reads the full record, changes
        the field locally and PUTs the whole record back. There is no
        concurrency token: a write made by someone else between the GET and
        the PUT is overwritten.

        Args:
            field: Name of the field to change.
            create_missing: Allow setting a field the record does not have yet.

        Raises:
            KeyError: The field is absent and create_missing is False.
        """
        vehicle = await self.get_vehicle(vehicle_id, auth_token=auth_token, country=country)

        if field not in vehicle and not create_missing:
            raise KeyError(f"Field '{field}' not found in vehicle data")

        old_value = vehicle.get(field)
        vehicle[field] = value

        client = await self._get_client()
        response = await client.put(
            f"/{country}/vehicle/{vehicle_id}",
            json=vehicle,
            headers={
                "Authorization": auth_token,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        response.raise_for_status()
        logger.info(f"Vehicle {vehicle_id} field '{field}' updated")

        return {
            "success": True,
            "vehicleId": vehicle_id,
            "updatedField": field,
            "oldValue": old_value,
            "newValue": value,
        }

    async def close(self):
        """Close httpx client connection"""
        if self._client:
            await self._client.aclose()
            self._client = None


vehicle_client = VehicleClient()
