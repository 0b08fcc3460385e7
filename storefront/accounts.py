import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.future import select

from .models import Backend, UserAddress, UserProfile, utcnow
from .queries import BACKEND_ERRORS
from .schemas import AddressIn, AddressOut, ProfileOut

logger = logging.getLogger(__name__)

ADDRESS_PARTS = ("house_no", "road_name", "landmark", "city", "state", "country", "pincode")


def compose_address_text(address: AddressIn) -> str:
    parts = [getattr(address, name) for name in ADDRESS_PARTS]
    return ", ".join(p.strip() for p in parts if p and p.strip())


# -------------------------
# Addresses
# -------------------------
async def list_addresses(backend: Backend, user_id: str) -> List[AddressOut]:
    stmt = (
        select(UserAddress)
        .where(UserAddress.user_id == user_id)
        .order_by(UserAddress.is_default.desc(), UserAddress.created_at.desc(), UserAddress.id.desc())
    )
    try:
        async with backend.session() as session:
            result = await session.execute(stmt)
            return [AddressOut.model_validate(a) for a in result.scalars().all()]
    except BACKEND_ERRORS:
        logger.exception("Query failed listing addresses for user %s", user_id)
        return []


async def save_address(
    backend: Backend, user_id: str, address: AddressIn, address_id: Optional[str] = None
) -> Optional[AddressOut]:
    """Insert a new address, or update ``address_id`` if it belongs to the user.

    Marking an address as default clears the flag on the user's other
    addresses in the same transaction.
    """
    logger.info("save_address user_id=%s address_id=%s", user_id, address_id)
    try:
        async with backend.session() as session:
            if address_id:
                stmt = select(UserAddress).where(UserAddress.id == address_id, UserAddress.user_id == user_id)
                row = (await session.execute(stmt)).scalars().first()
                if row is None:
                    logger.info("Address %s not found for user %s", address_id, user_id)
                    return None
            else:
                row = UserAddress(user_id=user_id)
                session.add(row)

            for field, value in address.model_dump().items():
                setattr(row, field, value)
            row.address_text = compose_address_text(address)
            await session.flush()

            if address.is_default:
                await session.execute(
                    update(UserAddress)
                    .where(UserAddress.user_id == user_id, UserAddress.id != row.id)
                    .values(is_default=False)
                )
            await session.commit()
            await session.refresh(row)
            return AddressOut.model_validate(row)
    except BACKEND_ERRORS:
        logger.exception("Failed to save address for user %s", user_id)
        return None


async def delete_address(backend: Backend, user_id: str, address_id: str) -> bool:
    logger.info("delete_address user_id=%s address_id=%s", user_id, address_id)
    try:
        async with backend.session() as session:
            stmt = select(UserAddress).where(UserAddress.id == address_id, UserAddress.user_id == user_id)
            row = (await session.execute(stmt)).scalars().first()
            if row is None:
                return False
            await session.delete(row)
            await session.commit()
            return True
    except BACKEND_ERRORS:
        logger.exception("Failed to delete address %s for user %s", address_id, user_id)
        return False


# -------------------------
# Profile
# -------------------------
def is_profile_complete(profile: Optional[ProfileOut]) -> bool:
    if profile is None:
        return False
    return bool((profile.display_name or "").strip()) and bool((profile.phone_number or "").strip())


async def get_profile(backend: Backend, user_id: str) -> Optional[ProfileOut]:
    try:
        async with backend.session() as session:
            profile = await session.get(UserProfile, user_id)
            if profile is None:
                logger.info("No profile for user %s", user_id)
                return None
            return ProfileOut.model_validate(profile)
    except BACKEND_ERRORS:
        logger.exception("Query failed fetching profile %s", user_id)
        return None


async def complete_profile(backend: Backend, user_id: str, display_name: str, phone_number: str) -> Optional[ProfileOut]:
    display_name = (display_name or "").strip()
    phone_number = (phone_number or "").strip()
    if not display_name or not phone_number:
        raise ValueError("Please fill in all fields")

    try:
        async with backend.session() as session:
            profile = await session.get(UserProfile, user_id)
            if profile is None:
                profile = UserProfile(id=user_id)
                session.add(profile)
            profile.display_name = display_name
            profile.phone_number = phone_number
            profile.updated_at = utcnow()
            await session.commit()
            await session.refresh(profile)
            logger.info("Profile completed for user %s", user_id)
            return ProfileOut.model_validate(profile)
    except BACKEND_ERRORS:
        logger.exception("Failed to update profile %s", user_id)
        return None
