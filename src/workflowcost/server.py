from __future__ import annotations

from typing import Any, Optional, Union

from fastapi import Depends, FastAPI, Response
from pydantic import BaseModel, Field

from .handler import ClientFactory, default_client_factory, handle_request
from .settings import Settings, get_settings
from .ui.console import Console, set_console

app = FastAPI(title="Workflow Cost Estimator")

Number = Union[int, float]

# -------------------- Schemas --------------------

class JobCost(BaseModel):
    id: str
    name: str
    status: str
    executor: Optional[str] = None
    resourceClass: Optional[str] = None
    durationSeconds: Optional[Number] = None
    billedMinutes: Optional[int] = None
    creditsConsumed: Optional[Number] = None
    costEstimate: Optional[Number] = None
    pricingStatus: str

class EstimateResponse(BaseModel):
    jobs: list[JobCost] = Field(default_factory=list)
    totalCost: Number
    totalCredits: Number
    creditPrice: Number
    currency: str
    unpricedCount: int
    partialEstimate: bool
    disclaimer: str

class MessageResponse(BaseModel):
    message: str
    disclaimer: str

class ErrorResponse(BaseModel):
    error: Any
    disclaimer: str

# -------------------- Dependencies --------------------

def get_client_factory() -> ClientFactory:
    return default_client_factory

def get_app_settings() -> Settings:
    return get_settings()

# -------------------- Startup --------------------

@app.on_event("startup")
async def startup() -> None:
    set_console(Console(debug=get_settings().debug))

# -------------------- Endpoints --------------------

@app.get("/health")
async def health():
    return {"ok": True}

@app.get(
    "/workflow-cost-estimate",
    responses={
        200: {"model": EstimateResponse},
        202: {"model": MessageResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def workflow_cost_estimate(
    workflow_id: Optional[str] = None,
    circle_token: Optional[str] = None,
    project_name: Optional[str] = None,
    project_user: Optional[str] = None,
    project_vcs: Optional[str] = None,
    client_factory: ClientFactory = Depends(get_client_factory),
    settings: Settings = Depends(get_app_settings),
):
    # Parameters stay optional here so missing ones get the 401 body, not a 422
    params = {
        "workflow_id": workflow_id,
        "circle_token": circle_token,
        "project_name": project_name,
        "project_user": project_user,
        "project_vcs": project_vcs,
    }
    result = handle_request(params, client_factory=client_factory, settings=settings)

    if result.status_code == 200:
        body = EstimateResponse.model_validate(result.body).model_dump_json(indent=2)
    else:
        body = result.render()
    return Response(content=body, status_code=result.status_code, media_type="application/json")
