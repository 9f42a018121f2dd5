from typing import Optional

from fastapi import APIRouter, Depends

from app.deps import get_catalog
from app.errors import NotFoundError
from app.stores.catalog import VisaCatalog
from models.common import ok

router = APIRouter(prefix="/visa-types", tags=["visa-types"])


@router.get("")
async def list_visa_types(
    countries: Optional[str] = None,
    country: Optional[str] = None,
    category: Optional[str] = None,
    catalog: VisaCatalog = Depends(get_catalog),
):
    """
    List active visa types.

    `countries` takes a comma separated list of ISO codes (e.g. "DE,NL");
    `country` and `category` narrow to a single value.
    """
    if countries:
        visas = await catalog.get_by_countries(countries.split(","))
    elif country:
        visas = await catalog.get_by_country(country)
    else:
        visas = await catalog.get_all()
    if category:
        visas = [v for v in visas if v.category == category.strip().lower()]
    return ok([v.model_dump() for v in visas], count=len(visas))


@router.get("/{id_or_code}")
async def get_visa_type(id_or_code: str, catalog: VisaCatalog = Depends(get_catalog)):
    visa = await catalog.get_by_id(id_or_code) or await catalog.get_by_code(id_or_code)
    if visa is None:
        raise NotFoundError(f"Visa type '{id_or_code}' not found")
    return ok(visa.model_dump())
