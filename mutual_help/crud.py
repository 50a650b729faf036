from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help import storage
from mutual_help.exceptions import CleanupError
from mutual_help.formatting import as_utc, format_french_date
from mutual_help.logging_config import get_logger
from mutual_help.models import (
    Ad,
    Category,
    CategoryDemand,
    CategoryOffer,
    City,
    Contact,
    Country,
    Demand,
    DemandOffer,
    Department,
    DepartmentPerimeter,
    Heart,
    Offer,
    ResetPasswordToken,
    Token,
    User,
    UserContact,
    utcnow,
)
from mutual_help import schemas
from mutual_help.security import create_access_token, generate_reset_token, hash_password, verify_password

LOGGER = get_logger(__name__)

PERIMETER_AD_LIMIT = 50


async def _run_step(db: AsyncSession, label: str, step: Callable[[], Awaitable[Any]]) -> None:
    # every cleanup step is committed on its own, a failure does not undo the previous ones
    try:
        await step()
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        LOGGER.exception("Error with the deletion: %s", label)
        raise CleanupError(label) from e


# -------------------- USERS & TOKENS --------------------

class UserCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        *,
        firstname: str,
        lastname: str,
        email: str,
        password: str,
        user_type: str = "standard",
    ) -> User:
        user = User(
            firstname=firstname,
            lastname=lastname,
            email=email,
            password_hash=hash_password(password),
            user_type=user_type,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        res = await self.db.execute(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        res = await self.db.execute(select(User).where(func.lower(User.email) == email.strip().lower()))
        return res.scalar_one_or_none()

    async def list(self) -> list[User]:
        res = await self.db.execute(select(User).where(User.deleted_at.is_(None)).order_by(User.created_at.asc()))
        return list(res.scalars().all())

    async def update_profile(self, user: User, *, firstname: str, lastname: str, email: str) -> User:
        user.firstname = firstname
        user.lastname = lastname
        user.email = email
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def set_password(self, user: User, password: str) -> User:
        user.password_hash = hash_password(password)
        await self.db.commit()
        return user

    async def set_user_type(self, user: User, user_type: str) -> User:
        user.user_type = user_type
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def verify_credentials(self, email: str, password: str) -> Optional[User]:
        user = await self.get_by_email(email)
        if not user or user.deleted_at is not None:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    async def delete_cascade(self, user: User) -> None:
        """
        Remove the user with everything that points at it.

        Ads go first (their tags, hearts and images included), then the
        user's own hearts, login and reset tokens and every contact edge in
        either direction. Each step commits separately.
        """
        res = await self.db.execute(select(Ad).where(Ad.user_id == user.id))
        ads = list(res.scalars().all())
        ad_crud = AdCRUD(self.db)
        for ad in ads:
            await ad_crud.remove_children(ad)
            storage.delete_images(ad.images)
            await _run_step(self.db, f"ad {ad.id}", lambda ad_id=ad.id: self.db.execute(delete(Ad).where(Ad.id == ad_id)))

        user_id = user.id
        await _run_step(self.db, "hearts", lambda: self.db.execute(delete(Heart).where(Heart.user_id == user_id)))
        await _run_step(self.db, "tokens", lambda: self.db.execute(delete(Token).where(Token.user_id == user_id)))
        await _run_step(
            self.db,
            "reset tokens",
            lambda: self.db.execute(delete(ResetPasswordToken).where(ResetPasswordToken.user_id == user_id)),
        )
        await _run_step(
            self.db,
            "contacts",
            lambda: self.db.execute(
                delete(UserContact).where(
                    or_(UserContact.first_user_id == user_id, UserContact.second_user_id == user_id)
                )
            ),
        )
        await _run_step(self.db, "user", lambda: self.db.execute(delete(User).where(User.id == user_id)))


class TokenCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue(self, user: User, *, limit: int) -> str:
        """Create a login token, dropping the oldest ones so at most `limit` stay alive."""
        res = await self.db.execute(
            select(Token).where(Token.user_id == user.id).order_by(Token.created_at.asc())
        )
        existing = list(res.scalars().all())
        excess = len(existing) - max(limit - 1, 0)
        for old in existing[:max(excess, 0)]:
            await self.db.delete(old)

        value = create_access_token(user_id=user.id, user_type=user.user_type)
        self.db.add(Token(token=value, user_id=user.id))
        await self.db.commit()
        return value

    async def get(self, value: str) -> Optional[Token]:
        res = await self.db.execute(select(Token).where(Token.token == value))
        return res.scalar_one_or_none()

    async def revoke(self, value: str) -> bool:
        found = await self.get(value)
        if found is None:
            return False
        await self.db.delete(found)
        await self.db.commit()
        return True

    async def revoke_all(self, user_id: uuid.UUID) -> None:
        await self.db.execute(delete(Token).where(Token.user_id == user_id))
        await self.db.commit()


class ResetTokenCRUD:
    def __init__(self, db: AsyncSession, ttl_minutes: int = 60):
        self.db = db
        self.ttl = timedelta(minutes=ttl_minutes)

    async def create(self, user: User) -> str:
        value = generate_reset_token()
        self.db.add(ResetPasswordToken(token=value, user_id=user.id))
        await self.db.commit()
        return value

    async def get(self, value: str) -> Optional[ResetPasswordToken]:
        res = await self.db.execute(select(ResetPasswordToken).where(ResetPasswordToken.token == value))
        return res.scalar_one_or_none()

    def is_expired(self, reset_token: ResetPasswordToken) -> bool:
        return datetime.now(timezone.utc) >= as_utc(reset_token.created_at) + self.ttl

    async def check(self, value: str) -> bool:
        """Valid tokens stay, expired ones are removed on sight."""
        found = await self.get(value)
        if found is None:
            return False
        if self.is_expired(found):
            await self.db.delete(found)
            await self.db.commit()
            return False
        return True

    async def consume(self, value: str, password: str) -> Optional[User]:
        """
        Set a new password with a reset token.

        The reset token is single use: it is deleted together with every
        login token of the user. Returns None for unknown or expired tokens.
        """
        found = await self.get(value)
        if found is None:
            return None
        if self.is_expired(found):
            await self.db.delete(found)
            await self.db.commit()
            return None

        user = await UserCRUD(self.db).get(found.user_id)
        if user is None:
            await self.db.delete(found)
            await self.db.commit()
            return None

        user.password_hash = hash_password(password)
        await self.db.delete(found)
        await self.db.execute(delete(Token).where(Token.user_id == user.id))
        await self.db.commit()
        return user


# -------------------- GEOGRAPHY --------------------

class CountryCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, *, country: str) -> Country:
        obj = Country(country=country)
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def get(self, country_id: uuid.UUID) -> Optional[Country]:
        return await self.db.get(Country, country_id)

    async def list(self) -> list[Country]:
        res = await self.db.execute(select(Country).order_by(Country.country.asc()))
        return list(res.scalars().all())

    async def departments(self, country_id: uuid.UUID) -> list[Department]:
        res = await self.db.execute(
            select(Department)
            .where(Department.country_id == country_id, Department.deleted_at.is_(None))
            .order_by(Department.department_number.asc())
        )
        return list(res.scalars().all())


class DepartmentCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, *, department_number: int, department_name: str, country_id: uuid.UUID) -> Department:
        obj = Department(
            department_number=department_number,
            department_name=department_name,
            country_id=country_id,
        )
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def get(self, department_id: uuid.UUID) -> Optional[Department]:
        res = await self.db.execute(
            select(Department).where(Department.id == department_id, Department.deleted_at.is_(None))
        )
        return res.scalar_one_or_none()

    async def list(self, *, sort_by_number: bool = False) -> list[Department]:
        stmt = select(Department).where(Department.deleted_at.is_(None))
        if sort_by_number:
            stmt = stmt.order_by(Department.department_number.asc())
        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def cities(self, department_id: uuid.UUID) -> list[City]:
        res = await self.db.execute(
            select(City).where(City.department_id == department_id).order_by(City.city.asc())
        )
        return list(res.scalars().all())

    async def add_to_perimeter(self, department: Department, neighbour: Department) -> Optional[DepartmentPerimeter]:
        """Returns None when the edge already exists."""
        res = await self.db.execute(
            select(DepartmentPerimeter).where(
                DepartmentPerimeter.first_department_id == department.id,
                DepartmentPerimeter.second_department_id == neighbour.id,
            )
        )
        if res.scalar_one_or_none() is not None:
            return None
        pivot = DepartmentPerimeter(first_department_id=department.id, second_department_id=neighbour.id)
        self.db.add(pivot)
        await self.db.commit()
        return pivot

    async def perimeter(self, department_id: uuid.UUID) -> list[Department]:
        res = await self.db.execute(
            select(Department)
            .join(DepartmentPerimeter, DepartmentPerimeter.second_department_id == Department.id)
            .where(DepartmentPerimeter.first_department_id == department_id, Department.deleted_at.is_(None))
            .order_by(Department.department_number.asc())
        )
        return list(res.scalars().all())

    async def ads_of_perimeter(self, department: Department) -> schemas.AdsOfPerimeter:
        """
        Visible ads of the department and of every department inside its
        perimeter, the most generous first, at most PERIMETER_AD_LIMIT.
        """
        departments = [department] + [d for d in await self.perimeter(department.id) if d.id != department.id]
        departments_by_id = {d.id: d for d in departments}

        res = await self.db.execute(select(City).where(City.department_id.in_(list(departments_by_id))))
        cities_by_id = {c.id: c for c in res.scalars().all()}

        ads: list[Ad] = []
        if cities_by_id:
            res = await self.db.execute(
                select(Ad)
                .where(Ad.city_id.in_(list(cities_by_id)), Ad.show.is_(True), Ad.deleted_at.is_(None))
                .order_by(Ad.generosity.desc(), Ad.created_at.desc())
                .limit(PERIMETER_AD_LIMIT)
            )
            ads = list(res.scalars().all())

        ad_crud = AdCRUD(self.db)
        demands = await ad_crud.demands_by_ad([ad.id for ad in ads])
        offers = await ad_crud.offers_by_ad([ad.id for ad in ads])

        objects = []
        for ad in ads:
            city = cities_by_id[ad.city_id]
            objects.append(
                schemas.AdObject(
                    ad_id=ad.id,
                    note=ad.note,
                    generosity=ad.generosity,
                    demands=[schemas.DemandOut.model_validate(d) for d in demands.get(ad.id, [])],
                    offers=[schemas.OfferOut.model_validate(o) for o in offers.get(ad.id, [])],
                    city=schemas.CityOut.model_validate(city),
                    department=schemas.DepartmentOut.model_validate(departments_by_id[city.department_id]),
                )
            )
        return schemas.AdsOfPerimeter(
            ads=objects,
            selected_department=schemas.DepartmentOut.model_validate(department),
        )


class CityCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, *, city: str, department_id: uuid.UUID) -> City:
        # a city name is unique: an existing one is moved to the given department
        res = await self.db.execute(select(City).where(City.city == city))
        existing = res.scalars().first()
        if existing is not None:
            existing.department_id = department_id
            await self.db.commit()
            return existing

        obj = City(city=city, department_id=department_id)
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def get(self, city_id: uuid.UUID) -> Optional[City]:
        return await self.db.get(City, city_id)

    async def list(self) -> list[City]:
        res = await self.db.execute(select(City).order_by(City.city.asc()))
        return list(res.scalars().all())

    async def update(self, city: City, *, name: str, department_id: uuid.UUID) -> City:
        city.city = name
        city.department_id = department_id
        await self.db.commit()
        return city

    async def ads(self, city_id: uuid.UUID) -> list[Ad]:
        res = await self.db.execute(
            select(Ad)
            .where(Ad.city_id == city_id, Ad.show.is_(True), Ad.deleted_at.is_(None))
            .order_by(Ad.generosity.desc())
        )
        return list(res.scalars().all())


# -------------------- ADS --------------------

class AdCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        *,
        note: str,
        city_id: uuid.UUID,
        user_id: uuid.UUID,
        generosity: int = 0,
        demands: list[str] | None = None,
        offers: list[str] | None = None,
    ) -> Ad:
        ad = Ad(note=note, city_id=city_id, user_id=user_id, generosity=generosity)
        self.db.add(ad)
        await self.db.flush()
        for value in _clean_tags(demands or []):
            self.db.add(Demand(demand=value, ad_id=ad.id))
        for value in _clean_tags(offers or []):
            self.db.add(Offer(offer=value, ad_id=ad.id))
        await self.db.commit()
        await self.db.refresh(ad)
        return ad

    async def get(self, ad_id: uuid.UUID) -> Optional[Ad]:
        res = await self.db.execute(select(Ad).where(Ad.id == ad_id, Ad.deleted_at.is_(None)))
        return res.scalar_one_or_none()

    async def get_of_user(self, ad_id: uuid.UUID, user_id: uuid.UUID) -> Optional[Ad]:
        res = await self.db.execute(
            select(Ad).where(Ad.id == ad_id, Ad.user_id == user_id, Ad.deleted_at.is_(None))
        )
        return res.scalar_one_or_none()

    async def list_of_user(self, user_id: uuid.UUID) -> list[Ad]:
        res = await self.db.execute(
            select(Ad).where(Ad.user_id == user_id, Ad.deleted_at.is_(None)).order_by(Ad.created_at.desc())
        )
        return list(res.scalars().all())

    async def demands(self, ad_id: uuid.UUID) -> list[Demand]:
        res = await self.db.execute(select(Demand).where(Demand.ad_id == ad_id).order_by(Demand.created_at.asc()))
        return list(res.scalars().all())

    async def offers(self, ad_id: uuid.UUID) -> list[Offer]:
        res = await self.db.execute(select(Offer).where(Offer.ad_id == ad_id).order_by(Offer.created_at.asc()))
        return list(res.scalars().all())

    async def demands_by_ad(self, ad_ids: list[uuid.UUID]) -> dict[uuid.UUID, list[Demand]]:
        grouped: dict[uuid.UUID, list[Demand]] = {}
        if not ad_ids:
            return grouped
        res = await self.db.execute(select(Demand).where(Demand.ad_id.in_(ad_ids)).order_by(Demand.created_at.asc()))
        for demand in res.scalars().all():
            grouped.setdefault(demand.ad_id, []).append(demand)
        return grouped

    async def offers_by_ad(self, ad_ids: list[uuid.UUID]) -> dict[uuid.UUID, list[Offer]]:
        grouped: dict[uuid.UUID, list[Offer]] = {}
        if not ad_ids:
            return grouped
        res = await self.db.execute(select(Offer).where(Offer.ad_id.in_(ad_ids)).order_by(Offer.created_at.asc()))
        for offer in res.scalars().all():
            grouped.setdefault(offer.ad_id, []).append(offer)
        return grouped

    async def hearts_count(self, ad_id: uuid.UUID) -> int:
        res = await self.db.execute(select(func.count()).select_from(Heart).where(Heart.ad_id == ad_id))
        return int(res.scalar_one())

    async def city_and_department(self, ad: Ad) -> tuple[City, Department]:
        res = await self.db.execute(
            select(City, Department).join(Department, City.department_id == Department.id).where(City.id == ad.city_id)
        )
        city, department = res.one()
        return city, department

    async def ad_data(self, ad: Ad) -> schemas.AdData:
        city, department = await self.city_and_department(ad)
        return schemas.AdData(
            ad_id=ad.id,
            note=ad.note,
            images=ad.images,
            demands=[schemas.DemandOut.model_validate(d) for d in await self.demands(ad.id)],
            offers=[schemas.OfferOut.model_validate(o) for o in await self.offers(ad.id)],
            department=schemas.DepartmentOut.model_validate(department),
            city=schemas.CityOut.model_validate(city),
            hearts=await self.hearts_count(ad.id),
            created_at=ad.created_at,
            created_at_label=format_french_date(ad.created_at),
            user_id=ad.user_id,
        )

    async def ad_of_user_data(self, ad: Ad) -> schemas.AdOfUserData:
        city, _ = await self.city_and_department(ad)
        return schemas.AdOfUserData(
            ad_id=ad.id,
            note=ad.note,
            images=ad.images,
            demands=[schemas.DemandOut.model_validate(d) for d in await self.demands(ad.id)],
            offers=[schemas.OfferOut.model_validate(o) for o in await self.offers(ad.id)],
            city=schemas.CityOut.model_validate(city),
            hearts=await self.hearts_count(ad.id),
            created_at=ad.created_at,
            created_at_label=format_french_date(ad.created_at),
        )

    async def all_with_users(self) -> list[schemas.AdWithUser]:
        res = await self.db.execute(
            select(Ad, User)
            .join(User, Ad.user_id == User.id)
            .where(Ad.deleted_at.is_(None))
            .order_by(Ad.created_at.asc())
        )
        result = []
        for ad, user in res.all():
            city, department = await self.city_and_department(ad)
            result.append(
                schemas.AdWithUser(
                    ad=schemas.AdOut.model_validate(ad),
                    user=schemas.UserPublic.model_validate(user),
                    demands=[schemas.DemandOut.model_validate(d) for d in await self.demands(ad.id)],
                    offers=[schemas.OfferOut.model_validate(o) for o in await self.offers(ad.id)],
                    city=schemas.CityOut.model_validate(city),
                    department=schemas.DepartmentOut.model_validate(department),
                    hearts=await self.hearts_count(ad.id),
                    created_at_label=format_french_date(ad.created_at),
                )
            )
        return result

    async def update(
        self,
        ad: Ad,
        *,
        note: str,
        demands: list[str],
        offers: list[str],
        city_id: Optional[uuid.UUID] = None,
        generosity: Optional[int] = None,
        show: Optional[bool] = None,
    ) -> Ad:
        ad.note = note
        if city_id is not None:
            ad.city_id = city_id
        if generosity is not None:
            ad.generosity = generosity
        if show is not None:
            ad.show = show

        await self._sync_demands(ad, demands)
        await self._sync_offers(ad, offers)
        await self.db.commit()
        await self.db.refresh(ad)
        return ad

    async def _sync_demands(self, ad: Ad, values: list[str]) -> None:
        existing = await self.demands(ad.id)
        wanted = set(_clean_tags(values))
        present = {d.demand for d in existing}
        for value in wanted - present:
            self.db.add(Demand(demand=value, ad_id=ad.id))
        stale = [d.id for d in existing if d.demand not in wanted]
        if stale:
            await _delete_demands(self.db, stale)

    async def _sync_offers(self, ad: Ad, values: list[str]) -> None:
        existing = await self.offers(ad.id)
        wanted = set(_clean_tags(values))
        present = {o.offer for o in existing}
        for value in wanted - present:
            self.db.add(Offer(offer=value, ad_id=ad.id))
        stale = [o.id for o in existing if o.offer not in wanted]
        if stale:
            await _delete_offers(self.db, stale)

    async def add_image(self, ad: Ad, filename: str) -> Ad:
        # JSON columns only notice reassignment, not in-place appends
        ad.images = [*(ad.images or []), filename]
        await self.db.commit()
        return ad

    async def remove_children(self, ad: Ad) -> None:
        ad_id = ad.id

        async def drop_demands():
            res = await self.db.execute(select(Demand.id).where(Demand.ad_id == ad_id))
            await _delete_demands(self.db, list(res.scalars().all()))

        async def drop_offers():
            res = await self.db.execute(select(Offer.id).where(Offer.ad_id == ad_id))
            await _delete_offers(self.db, list(res.scalars().all()))

        await _run_step(self.db, f"demands of ad {ad_id}", drop_demands)
        await _run_step(self.db, f"offers of ad {ad_id}", drop_offers)
        await _run_step(
            self.db, f"hearts of ad {ad_id}", lambda: self.db.execute(delete(Heart).where(Heart.ad_id == ad_id))
        )

    async def soft_delete(self, ad: Ad) -> None:
        await self.remove_children(ad)
        storage.delete_images(ad.images)
        ad.deleted_at = utcnow()
        ad.show = False
        await _run_step(self.db, f"ad {ad.id}", self.db.flush)

    async def toggle_heart(self, *, user_id: uuid.UUID, ad_id: uuid.UUID) -> bool:
        """Like/unlike. Returns True when the ad is liked afterwards."""
        res = await self.db.execute(select(Heart).where(Heart.user_id == user_id, Heart.ad_id == ad_id))
        existing = res.scalars().first()
        if existing is not None:
            await self.db.delete(existing)
            await self.db.commit()
            return False
        self.db.add(Heart(user_id=user_id, ad_id=ad_id))
        await self.db.commit()
        return True


def _clean_tags(values: list[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        value = value.strip()
        if value and value not in seen:
            seen.append(value)
    return seen


async def _delete_demands(db: AsyncSession, demand_ids: list[uuid.UUID]) -> None:
    if not demand_ids:
        return
    await db.execute(delete(DemandOffer).where(DemandOffer.demand_id.in_(demand_ids)))
    await db.execute(delete(CategoryDemand).where(CategoryDemand.demand_id.in_(demand_ids)))
    await db.execute(delete(Demand).where(Demand.id.in_(demand_ids)))


async def _delete_offers(db: AsyncSession, offer_ids: list[uuid.UUID]) -> None:
    if not offer_ids:
        return
    await db.execute(delete(DemandOffer).where(DemandOffer.offer_id.in_(offer_ids)))
    await db.execute(delete(CategoryOffer).where(CategoryOffer.offer_id.in_(offer_ids)))
    await db.execute(delete(Offer).where(Offer.id.in_(offer_ids)))


# -------------------- TAGS --------------------

class DemandCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, *, demand: str, ad_id: uuid.UUID) -> Demand:
        obj = Demand(demand=demand, ad_id=ad_id)
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def create_many(self, *, strings: list[str], ad_id: uuid.UUID) -> list[Demand]:
        objs = [Demand(demand=value, ad_id=ad_id) for value in _clean_tags(strings)]
        self.db.add_all(objs)
        await self.db.commit()
        return objs

    async def get(self, demand_id: uuid.UUID) -> Optional[Demand]:
        return await self.db.get(Demand, demand_id)

    async def list(self) -> list[Demand]:
        res = await self.db.execute(select(Demand).order_by(Demand.created_at.asc()))
        return list(res.scalars().all())

    async def delete(self, demand_id: uuid.UUID) -> bool:
        if await self.get(demand_id) is None:
            return False
        await _delete_demands(self.db, [demand_id])
        await self.db.commit()
        return True

    async def add_offer(self, demand: Demand, offer: Offer) -> bool:
        res = await self.db.execute(
            select(DemandOffer).where(DemandOffer.demand_id == demand.id, DemandOffer.offer_id == offer.id)
        )
        if res.scalar_one_or_none() is not None:
            return False
        self.db.add(DemandOffer(demand_id=demand.id, offer_id=offer.id))
        await self.db.commit()
        return True

    async def offers(self, demand_id: uuid.UUID) -> list[Offer]:
        res = await self.db.execute(
            select(Offer).join(DemandOffer, DemandOffer.offer_id == Offer.id).where(DemandOffer.demand_id == demand_id)
        )
        return list(res.scalars().all())


class OfferCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_many(self, *, strings: list[str], ad_id: uuid.UUID) -> list[Offer]:
        objs = [Offer(offer=value, ad_id=ad_id) for value in _clean_tags(strings)]
        self.db.add_all(objs)
        await self.db.commit()
        return objs

    async def get(self, offer_id: uuid.UUID) -> Optional[Offer]:
        return await self.db.get(Offer, offer_id)

    async def demands(self, offer_id: uuid.UUID) -> list[Demand]:
        res = await self.db.execute(
            select(Demand).join(DemandOffer, DemandOffer.demand_id == Demand.id).where(DemandOffer.offer_id == offer_id)
        )
        return list(res.scalars().all())


class CategoryCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, *, name: str, main_category_id: Optional[uuid.UUID] = None) -> Category:
        obj = Category(name=name, main_category_id=main_category_id)
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def get(self, category_id: uuid.UUID) -> Optional[Category]:
        res = await self.db.execute(
            select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
        )
        return res.scalar_one_or_none()

    async def list(self) -> list[Category]:
        res = await self.db.execute(select(Category).where(Category.deleted_at.is_(None)).order_by(Category.name))
        return list(res.scalars().all())

    async def subcategories(self, category_id: uuid.UUID) -> list[Category]:
        res = await self.db.execute(
            select(Category).where(Category.main_category_id == category_id, Category.deleted_at.is_(None))
        )
        return list(res.scalars().all())

    async def soft_delete(self, category: Category) -> None:
        category.deleted_at = utcnow()
        await self.db.commit()

    async def attach_demand(self, category: Category, demand: Demand) -> bool:
        res = await self.db.execute(
            select(CategoryDemand).where(
                CategoryDemand.category_id == category.id, CategoryDemand.demand_id == demand.id
            )
        )
        if res.scalar_one_or_none() is not None:
            return False
        self.db.add(CategoryDemand(category_id=category.id, demand_id=demand.id))
        await self.db.commit()
        return True

    async def attach_offer(self, category: Category, offer: Offer) -> bool:
        res = await self.db.execute(
            select(CategoryOffer).where(CategoryOffer.category_id == category.id, CategoryOffer.offer_id == offer.id)
        )
        if res.scalar_one_or_none() is not None:
            return False
        self.db.add(CategoryOffer(category_id=category.id, offer_id=offer.id))
        await self.db.commit()
        return True


# -------------------- HEARTS --------------------

class HeartCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, *, user_id: uuid.UUID, ad_id: uuid.UUID) -> Heart:
        # one heart per (user, ad): return the existing one
        res = await self.db.execute(select(Heart).where(Heart.user_id == user_id, Heart.ad_id == ad_id))
        existing = res.scalars().first()
        if existing is not None:
            return existing
        heart = Heart(user_id=user_id, ad_id=ad_id)
        self.db.add(heart)
        await self.db.commit()
        await self.db.refresh(heart)
        return heart

    async def get(self, heart_id: uuid.UUID) -> Optional[Heart]:
        return await self.db.get(Heart, heart_id)

    async def delete(self, heart: Heart) -> None:
        await self.db.delete(heart)
        await self.db.commit()


# -------------------- CONTACTS --------------------

class ContactCRUD:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, *, ad_link: str, facebook_link: str, contact_name: str) -> Contact:
        obj = Contact(ad_link=ad_link, facebook_link=facebook_link, contact_name=contact_name)
        self.db.add(obj)
        await self.db.commit()
        await self.db.refresh(obj)
        return obj

    async def list(self) -> list[Contact]:
        res = await self.db.execute(select(Contact).order_by(Contact.created_at.asc()))
        return list(res.scalars().all())

    async def delete(self, contact_id: uuid.UUID) -> bool:
        contact = await self.db.get(Contact, contact_id)
        if contact is None:
            return False
        await self.db.delete(contact)
        await self.db.commit()
        return True


class UserContactCRUD:
    """Friend requests between users, stored as directed edges first -> second."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def edge(self, first_user_id: uuid.UUID, second_user_id: uuid.UUID) -> Optional[UserContact]:
        res = await self.db.execute(
            select(UserContact).where(
                UserContact.first_user_id == first_user_id,
                UserContact.second_user_id == second_user_id,
            )
        )
        return res.scalar_one_or_none()

    async def send(self, *, sender_id: uuid.UUID, receiver_id: uuid.UUID) -> UserContact:
        pivot = UserContact(first_user_id=sender_id, second_user_id=receiver_id, are_contacts=False)
        self.db.add(pivot)
        await self.db.commit()
        await self.db.refresh(pivot)
        return pivot

    async def accept(self, pivot: UserContact) -> UserContact:
        pivot.are_contacts = True
        await self.db.commit()
        return pivot

    async def decline(self, pivot: UserContact) -> None:
        await self.db.delete(pivot)
        await self.db.commit()

    async def contacts(self, user_id: uuid.UUID) -> list[User]:
        """Accepted contacts, whichever side asked."""
        res = await self.db.execute(
            select(User)
            .join(
                UserContact,
                or_(
                    and_(UserContact.first_user_id == User.id, UserContact.second_user_id == user_id),
                    and_(UserContact.second_user_id == User.id, UserContact.first_user_id == user_id),
                ),
            )
            .where(UserContact.are_contacts.is_(True), User.deleted_at.is_(None))
        )
        return list(res.scalars().unique().all())

    async def pending_requests(self, user_id: uuid.UUID) -> list[User]:
        """Users who asked `user_id` and are still waiting for an answer."""
        res = await self.db.execute(
            select(User)
            .join(UserContact, UserContact.first_user_id == User.id)
            .where(
                UserContact.second_user_id == user_id,
                UserContact.are_contacts.is_(False),
                User.deleted_at.is_(None),
            )
        )
        return list(res.scalars().all())

    async def resolve(self, me: User, owner: User) -> schemas.ContactData:
        """
        What `me` may see about `owner`, the owner of an ad.

        other asked me   -> accepted: full details, else first name only
        I asked other    -> accepted: full details, else first name only
        no edge, not me  -> nothing
        no edge, my ad   -> my own details
        """
        asked_me = await self.edge(owner.id, me.id)
        if asked_me is not None:
            if asked_me.are_contacts:
                return _full_contact(owner)
            return schemas.ContactData(
                contact_id=owner.id, firstname=owner.firstname, you_accepted=False, other_accepted=True
            )

        i_asked = await self.edge(me.id, owner.id)
        if i_asked is not None:
            if i_asked.are_contacts:
                return _full_contact(owner)
            return schemas.ContactData(
                contact_id=owner.id, firstname=owner.firstname, you_accepted=True, other_accepted=False
            )

        if me.id != owner.id:
            return schemas.ContactData(contact_id=owner.id, you_accepted=False, other_accepted=False)
        return _full_contact(me)


def _full_contact(user: User) -> schemas.ContactData:
    return schemas.ContactData(
        contact_id=user.id,
        firstname=user.firstname,
        lastname=user.lastname,
        email=user.email,
        you_accepted=True,
        other_accepted=True,
    )
