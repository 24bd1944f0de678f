"""
API routes for the archetype and theme catalog
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from pairmatch.core.database import get_db
from pairmatch.services.catalog_service import CatalogService

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


class ArchetypeResponse(BaseModel):
    code: str
    display_name: str
    structure_description: str
    component_patterns: Optional[str]
    api_patterns: Optional[str]
    min_complexity: int
    max_complexity: int

    class Config:
        from_attributes = True


class ThemeResponse(BaseModel):
    code: str
    display_name: str
    domain_context: Optional[str]
    example_entities: Optional[str]

    class Config:
        from_attributes = True


@router.get("/archetypes", response_model=List[ArchetypeResponse])
async def list_archetypes(db: Session = Depends(get_db)):
    """List active archetypes"""
    return CatalogService(db).list_archetypes()


@router.get("/themes", response_model=List[ThemeResponse])
async def list_themes(db: Session = Depends(get_db)):
    """List active themes"""
    return CatalogService(db).list_themes()
