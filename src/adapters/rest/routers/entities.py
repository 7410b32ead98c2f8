"""Read-only knowledge graph endpoints."""

from fastapi import APIRouter, Depends, Query

from factory import ServiceFactory
from adapters.rest.dependencies import get_factory
from adapters.rest.schemas import EntityOut, RelationshipOut
from domain.exceptions import InvalidRequestError

router = APIRouter(prefix="/api/entities", tags=["entities"])


@router.get("/{entity_id}", response_model=EntityOut)
async def get_entity(entity_id: str, factory: ServiceFactory = Depends(get_factory)):
    entity = await factory.store.find_entity(entity_id)
    if entity is None:
        raise InvalidRequestError(
            f"Entity {entity_id} not found",
            context={"code": "entity_not_found", "http_status": 404},
        )
    return entity.to_dict()


@router.get("/{entity_id}/relationships", response_model=list[RelationshipOut])
async def get_relationships(
    entity_id: str,
    relationship_type: str | None = Query(default=None, alias="type"),
    direction: str = "both",
    factory: ServiceFactory = Depends(get_factory),
):
    try:
        rows = await factory.store.find_relationships(entity_id, relationship_type, direction)
    except ValueError:
        raise InvalidRequestError(
            f"Invalid direction '{direction}' (expected outgoing, incoming or both)",
            context={"code": "invalid_direction"},
        )
    return [r.to_dict() for r in rows]
