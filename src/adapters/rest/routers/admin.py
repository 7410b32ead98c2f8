"""Administrative endpoints: permission changes and tool resets."""

import logging

from fastapi import APIRouter, Depends

from factory import ServiceFactory
from adapters.rest.dependencies import get_factory, require_admin
from adapters.rest.schemas import PermissionsBody, PermissionsOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/permissions", response_model=PermissionsOut)
async def configure_permissions(
    body: PermissionsBody,
    factory: ServiceFactory = Depends(get_factory),
):
    granted = factory.tools.configure_permissions(
        body.agent_name, body.tool_names, replace=body.replace,
    )
    return PermissionsOut(agent_name=body.agent_name, tools=sorted(granted))


@router.get("/permissions/audit")
async def permission_audit(factory: ServiceFactory = Depends(get_factory)):
    return {
        "audit_log": factory.tools.audit_log(),
        "security_events": factory.tools.security_events(),
    }


@router.post("/tools/{tool_name}/reset")
async def reset_tool(tool_name: str, factory: ServiceFactory = Depends(get_factory)):
    return {"tool": tool_name, "reset": factory.tools.reset_tool(tool_name)}


@router.get("/store/health")
async def store_health(factory: ServiceFactory = Depends(get_factory)):
    return {
        "connection": await factory.store.connection_health(),
        "metrics": factory.store.performance_metrics(),
    }
