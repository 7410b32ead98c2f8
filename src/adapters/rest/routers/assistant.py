"""Request processing and tool health endpoints."""

from fastapi import APIRouter, Depends

from factory import ServiceFactory
from adapters.rest.dependencies import get_factory, build_request_ctx
from adapters.rest.schemas import ProcessBody, ProcessOut

router = APIRouter(prefix="/api", tags=["assistant"])


@router.post("/process", response_model=ProcessOut)
async def process(
    body: ProcessBody,
    factory: ServiceFactory = Depends(get_factory),
):
    service = factory.create_assistant_service()
    ctx = build_request_ctx(body.user_id, factory)
    response = await service.process(body.query, ctx, plan=body.plan)
    return response.to_dict()


@router.get("/tools/health")
async def tools_health(factory: ServiceFactory = Depends(get_factory)):
    return factory.tools.health()
