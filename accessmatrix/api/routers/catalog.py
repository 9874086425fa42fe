"""Feature catalog API endpoints."""

from typing import List

from fastapi import APIRouter, Depends

from accessmatrix.api.deps import get_catalog
from accessmatrix.api.schemas.access import CategoryGroup, FeatureInfo
from accessmatrix.core.rbac import FeatureCatalog

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/features", response_model=List[CategoryGroup])
async def list_features(catalog: FeatureCatalog = Depends(get_catalog)):
    """List every feature, grouped by category."""
    return [
        CategoryGroup(
            category=category.value,
            features=[
                FeatureInfo(
                    key=f.key,
                    label=f.label,
                    category=f.category.value,
                    description=f.description,
                    minimum_role=f.minimum_role.value,
                )
                for f in features
            ],
        )
        for category, features in catalog.list_by_category()
    ]
