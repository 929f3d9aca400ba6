import logging
from typing import List
from uuid import UUID

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import Admin, Staff
from ..tools.security import hash_pin, verify_pin, verify_secret
from .errors import AuthenticationError, NotFoundError, ServiceError

logger = logging.getLogger(__name__)


class AuthService:
    """
    Credential checks for kiosk staff (6-digit PIN) and admins (email + password),
    plus staff account management for the admin console.
    """

    def __init__(self, db_client: AsyncPostgresClient):
        self.db_client = db_client

    async def authenticate_staff(self, pin: str) -> Staff:
        """
        Finds the active staff member whose PIN hash matches. PIN hashes are
        salted, so every active staff row has to be checked in turn; the first
        match wins.
        """
        try:
            staff_members = await self.db_client.get_active_staff()
        except Exception as e:
            logger.error("Could not load active staff for PIN check.", exc_info=True)
            raise ServiceError("Failed to verify PIN") from e

        if not staff_members:
            logger.warning("PIN login attempted but no active staff exist.")
            raise AuthenticationError("No staff found")

        for staff in staff_members:
            if verify_pin(pin, staff.pin_hash):
                logger.info(f"Staff '{staff.name}' ({staff.id}) authenticated.")
                return staff

        logger.warning("PIN login rejected: no matching staff.")
        raise AuthenticationError("Invalid PIN")

    async def authenticate_admin(self, email: str, password: str) -> Admin:
        normalized = email.strip().lower()
        try:
            admin = await self.db_client.get_admin_by_email(normalized)
        except Exception as e:
            logger.error(f"Admin lookup for '{normalized}' failed.", exc_info=True)
            raise ServiceError("Failed to verify credentials") from e

        if not admin or not verify_secret(password, admin.password_hash):
            logger.warning(f"Admin login rejected for '{normalized}'.")
            raise AuthenticationError("Invalid credentials")

        logger.info(f"Admin '{normalized}' authenticated.")
        return admin

    async def create_staff(self, name: str, pin: str) -> Staff:
        try:
            staff = await self.db_client.add_staff(name=name.strip(), pin_hash=hash_pin(pin))
        except Exception as e:
            logger.error(f"Could not create staff '{name}'.", exc_info=True)
            raise ServiceError("Failed to create staff") from e
        logger.info(f"Staff '{staff.name}' created with id {staff.id}.")
        return staff

    async def set_staff_active(self, staff_id: UUID, is_active: bool):
        try:
            updated = await self.db_client.set_staff_active(staff_id, is_active)
        except Exception as e:
            logger.error(f"Could not update staff {staff_id}.", exc_info=True)
            raise ServiceError("Failed to update staff") from e
        if not updated:
            raise NotFoundError("Staff not found")
        logger.info(f"Staff {staff_id} is_active set to {is_active}.")

    async def list_staff(self) -> List[Staff]:
        try:
            return await self.db_client.list_staff()
        except Exception as e:
            logger.error("Could not list staff.", exc_info=True)
            raise ServiceError("Failed to load staff") from e

