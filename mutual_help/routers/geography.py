from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help.crud import CityCRUD, CountryCRUD, DepartmentCRUD
from mutual_help.db import get_db
from mutual_help.deps import get_standard_user
from mutual_help.schemas import (
    AdOut,
    CityCreate,
    CityOut,
    CityUpdate,
    CityWithDepartment,
    CountryCreate,
    CountryOut,
    CountryWithDepartments,
    DepartmentCreate,
    DepartmentOut,
    DepartmentWithPerimeter,
)

countries_router = APIRouter(prefix="/api/countries", tags=["countries"])
departments_router = APIRouter(prefix="/api/departments", tags=["departments"])
cities_router = APIRouter(prefix="/api/cities", tags=["cities"])


async def _get_department_or_404(db: AsyncSession, department_id: uuid.UUID):
    department = await DepartmentCRUD(db).get(department_id)
    if department is None:
        raise HTTPException(status_code=404, detail="Department not found")
    return department


# -------------------- COUNTRIES --------------------

@countries_router.post("", response_model=CountryOut, status_code=201)
async def create_country(
    payload: CountryCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    return await CountryCRUD(db).create(country=payload.country)


@countries_router.get("", response_model=list[CountryOut])
async def list_countries(db: AsyncSession = Depends(get_db)):
    return await CountryCRUD(db).list()


@countries_router.get("/{country_id}", response_model=CountryWithDepartments)
async def get_country(country_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    crud = CountryCRUD(db)
    country = await crud.get(country_id)
    if country is None:
        raise HTTPException(status_code=404, detail="Country not found")
    departments = await crud.departments(country_id)
    return CountryWithDepartments(
        country=CountryOut.model_validate(country),
        departments=[DepartmentOut.model_validate(d) for d in departments],
    )


@countries_router.get("/{country_id}/departments", response_model=list[DepartmentOut])
async def get_country_departments(country_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    crud = CountryCRUD(db)
    if await crud.get(country_id) is None:
        raise HTTPException(status_code=404, detail="Country not found")
    return await crud.departments(country_id)


# -------------------- DEPARTMENTS --------------------

@departments_router.post("", response_model=DepartmentOut, status_code=201)
async def create_department(
    payload: DepartmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    if await CountryCRUD(db).get(payload.country_id) is None:
        raise HTTPException(status_code=404, detail="Country not found")
    return await DepartmentCRUD(db).create(
        department_number=payload.department_number,
        department_name=payload.department_name,
        country_id=payload.country_id,
    )


@departments_router.get("", response_model=list[DepartmentOut])
async def list_departments(db: AsyncSession = Depends(get_db)):
    return await DepartmentCRUD(db).list()


@departments_router.get("/sorted", response_model=list[DepartmentOut])
async def list_departments_sorted(db: AsyncSession = Depends(get_db)):
    return await DepartmentCRUD(db).list(sort_by_number=True)


@departments_router.get("/{department_id}", response_model=DepartmentOut)
async def get_department(department_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await _get_department_or_404(db, department_id)


@departments_router.get("/{department_id}/cities", response_model=list[CityOut])
async def get_department_cities(department_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_department_or_404(db, department_id)
    return await DepartmentCRUD(db).cities(department_id)


@departments_router.post("/{department_id}/perimeter/{other_id}", response_model=DepartmentWithPerimeter, status_code=201)
async def add_department_to_perimeter(
    department_id: uuid.UUID,
    other_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    department = await _get_department_or_404(db, department_id)
    neighbour = await _get_department_or_404(db, other_id)

    crud = DepartmentCRUD(db)
    added = await crud.add_to_perimeter(department, neighbour)
    if added is None:
        raise HTTPException(status_code=409, detail="Department already in perimeter")

    perimeter = await crud.perimeter(department_id)
    return DepartmentWithPerimeter(
        department=DepartmentOut.model_validate(department),
        perimeter=[DepartmentOut.model_validate(d) for d in perimeter],
    )


@departments_router.get("/{department_id}/perimeter", response_model=list[DepartmentOut])
async def get_department_perimeter(department_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_department_or_404(db, department_id)
    return await DepartmentCRUD(db).perimeter(department_id)


@departments_router.get("/{department_id}/with-perimeter", response_model=DepartmentWithPerimeter)
async def get_department_with_perimeter(department_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    department = await _get_department_or_404(db, department_id)
    perimeter = await DepartmentCRUD(db).perimeter(department_id)
    return DepartmentWithPerimeter(
        department=DepartmentOut.model_validate(department),
        perimeter=[DepartmentOut.model_validate(d) for d in perimeter],
    )


# -------------------- CITIES --------------------

@cities_router.post("", response_model=CityOut, status_code=201)
async def create_city(
    payload: CityCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    await _get_department_or_404(db, payload.department_id)
    return await CityCRUD(db).create(city=payload.city, department_id=payload.department_id)


@cities_router.get("", response_model=list[CityOut])
async def list_cities(db: AsyncSession = Depends(get_db)):
    return await CityCRUD(db).list()


@cities_router.get("/{city_id}", response_model=CityWithDepartment)
async def get_city(city_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    city = await CityCRUD(db).get(city_id)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    department = await _get_department_or_404(db, city.department_id)
    return CityWithDepartment(
        city=CityOut.model_validate(city),
        department=DepartmentOut.model_validate(department),
    )


@cities_router.put("/{city_id}", response_model=CityOut)
async def update_city(
    city_id: uuid.UUID,
    payload: CityUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    crud = CityCRUD(db)
    city = await crud.get(city_id)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    await _get_department_or_404(db, payload.department_id)
    return await crud.update(city, name=payload.city, department_id=payload.department_id)


@cities_router.get("/{city_id}/ads", response_model=list[AdOut])
async def get_city_ads(city_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    crud = CityCRUD(db)
    if await crud.get(city_id) is None:
        raise HTTPException(status_code=404, detail="City not found")
    return await crud.ads(city_id)
