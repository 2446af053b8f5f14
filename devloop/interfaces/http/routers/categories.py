"""Category aggregation endpoint."""
from fastapi import APIRouter, Depends

from devloop.interfaces.http.deps import get_catalog
from devloop.modules.catalog import CatalogManager
from devloop.schemas import CategoryResponse

router = APIRouter()


@router.get("", response_model=list[CategoryResponse], summary="Script counts per category")
async def list_categories(catalog: CatalogManager = Depends(get_catalog)):
    return [CategoryResponse.from_domain(item) for item in catalog.categories()]
