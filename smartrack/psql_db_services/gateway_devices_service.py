"""
PostgreSQL Operations for Gateway Devices
-----------------------------------------
Lookups of IoT gateways used as authentication principals.
"""

from typing import Optional

from smartrack.core.database_connection import DatabaseManager
from smartrack.models.db_models import GatewayDeviceRecord
from smartrack.psql_db_services.base_service import BaseDatabaseService


class GatewayDevicesService(BaseDatabaseService):
    """Read access to gateway_device plus connection bookkeeping."""

    def __init__(self, database_manager: Optional[DatabaseManager] = None):
        super().__init__(database_manager)

    async def get_gateway_device_by_serial(
        self, serial_number: str
    ) -> Optional[GatewayDeviceRecord]:
        """
        Retrieve a gateway device by its serial number.

        Returns:
            GatewayDeviceRecord or None when no device has the serial number
        """
        self.validate_string_not_empty(serial_number, "serial_number")

        row = await self.fetch_one(
            """
            SELECT id, serial_number, device_secret, last_connected
            FROM gateway_device
            WHERE serial_number = :serial_number
            """,
            {"serial_number": serial_number},
        )
        return GatewayDeviceRecord(**row) if row else None

    async def mark_connected(self, device_id: int) -> None:
        """Record that the gateway just authenticated."""
        self.validate_positive_integer(device_id, "device_id")

        await self.execute_update(
            "UPDATE gateway_device SET last_connected = NOW() WHERE id = :device_id",
            {"device_id": device_id},
        )
