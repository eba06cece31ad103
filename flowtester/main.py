"""
FastAPI Main Application - Flow Tester
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import Field, field_validator

from .agents.orchestrator_agent import StepOrchestrator, validate_url
from .browser.controller import PlaywrightSessionProvider
from .config import settings
from .errors import ValidationError
from .llm.clients import OllamaLanguageModel, OllamaVisionModel
from .models import RunOptions
from .models.base import CamelModel
from .services.registry import TestResultRegistry
from .utils.helpers import format_duration, new_test_id

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    registry = TestResultRegistry()
    app.state.registry = registry
    app.state.orchestrator = StepOrchestrator(
        session_provider=PlaywrightSessionProvider(),
        language_model=OllamaLanguageModel(),
        vision_model=OllamaVisionModel(),
        registry=registry,
    )
    logger.info(f"{settings.APP_NAME} started")
    yield
    logger.info(f"{settings.APP_NAME} shutting down")


app = FastAPI(
    title=settings.APP_NAME,
    description="LLM-guided end-to-end testing of website flows",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_registry(request: Request) -> TestResultRegistry:
    return request.app.state.registry


def get_orchestrator(request: Request) -> StepOrchestrator:
    return request.app.state.orchestrator


# Request/Response Models
class TestWebsiteRequest(CamelModel):
    __test__ = False

    url: str
    custom_steps: List[str] = Field(..., min_length=1)
    options: RunOptions = Field(default_factory=RunOptions)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        try:
            validate_url(value)
        except ValidationError as e:
            raise ValueError(e.message)
        return value.strip()


class TestBookingFlowRequest(CamelModel):
    __test__ = False

    url: str
    custom_steps: Optional[List[str]] = None
    options: RunOptions = Field(default_factory=RunOptions)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        try:
            validate_url(value)
        except ValidationError as e:
            raise ValueError(e.message)
        return value.strip()


class TestAcceptedResponse(CamelModel):
    __test__ = False

    test_id: str
    status: str = "pending"


async def run_custom_test(
    orchestrator: StepOrchestrator,
    registry: TestResultRegistry,
    test_id: str,
    url: str,
    steps: List[str],
    options: RunOptions
):
    """Background task wrapper for an instruction-driven run."""
    try:
        await orchestrator.run(url, steps, options, test_id=test_id)
    except Exception as e:
        logger.exception(f"Test {test_id} crashed")
        registry.fail(test_id, f"Test run crashed: {e}")


async def run_standard_test(
    orchestrator: StepOrchestrator,
    registry: TestResultRegistry,
    test_id: str,
    url: str,
    options: RunOptions
):
    """Background task wrapper for the standard booking flow."""
    try:
        await orchestrator.run_standard(url, options, test_id=test_id)
    except Exception as e:
        logger.exception(f"Test {test_id} crashed")
        registry.fail(test_id, f"Test run crashed: {e}")


# API Endpoints
@app.get("/")
async def root():
    return {"message": f"{settings.APP_NAME} API", "docs": "/docs"}


@app.post("/api/test-website", status_code=202)
async def test_website(
    request: TestWebsiteRequest,
    background_tasks: BackgroundTasks,
    registry: TestResultRegistry = Depends(get_registry),
    orchestrator: StepOrchestrator = Depends(get_orchestrator),
):
    """
    Start a test that follows natural-language steps on a website.
    The run proceeds in the background; poll /api/test-status/{id}.
    """
    test_id = new_test_id()
    registry.begin(test_id, request.url)
    background_tasks.add_task(
        run_custom_test, orchestrator, registry, test_id, request.url, request.custom_steps, request.options
    )
    logger.info(f"Accepted test {test_id} with {len(request.custom_steps)} steps for {request.url}")
    return TestAcceptedResponse(test_id=test_id).model_dump(mode="json", by_alias=True)


@app.post("/api/test-booking-flow", status_code=202)
async def test_booking_flow(
    request: TestBookingFlowRequest,
    background_tasks: BackgroundTasks,
    registry: TestResultRegistry = Depends(get_registry),
    orchestrator: StepOrchestrator = Depends(get_orchestrator),
):
    """
    Start the standard demo-booking test, or a step-driven test when
    customSteps are given.
    """
    test_id = new_test_id()
    registry.begin(test_id, request.url)
    if request.custom_steps:
        background_tasks.add_task(
            run_custom_test, orchestrator, registry, test_id, request.url, request.custom_steps, request.options
        )
    else:
        background_tasks.add_task(
            run_standard_test, orchestrator, registry, test_id, request.url, request.options
        )
    logger.info(f"Accepted booking flow test {test_id} for {request.url}")
    return TestAcceptedResponse(test_id=test_id).model_dump(mode="json", by_alias=True)


@app.get("/api/test-status/{test_id}")
async def get_test_status(test_id: str, registry: TestResultRegistry = Depends(get_registry)):
    status = registry.get_status(test_id)
    if status is None:
        raise HTTPException(status_code=404, detail="Test not found")
    return status.model_dump(mode="json", by_alias=True)


@app.get("/api/test-history")
async def get_test_history(registry: TestResultRegistry = Depends(get_registry)):
    history = registry.list_history()
    return {
        "success": True,
        "history": [item.model_dump(mode="json", by_alias=True) for item in history],
    }


@app.get("/api/test-history/{test_id}")
async def get_test_history_item(test_id: str, registry: TestResultRegistry = Depends(get_registry)):
    item = registry.get_history(test_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Test history not found")
    report = registry.get_report(test_id)
    return {
        "success": True,
        "historyItem": item.model_dump(mode="json", by_alias=True),
        "testResult": report.model_dump(mode="json", by_alias=True) if report else None,
    }


@app.get("/api/reports")
async def get_reports(registry: TestResultRegistry = Depends(get_registry)):
    """Aggregate statistics over all finished tests."""
    return registry.summary()


@app.get("/api/reports/{test_id}")
async def get_report(test_id: str, registry: TestResultRegistry = Depends(get_registry)):
    """
    JSON report for one finished test.
    """
    item = registry.get_history(test_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Test report not found")
    report = registry.get_report(test_id)
    return {
        **item.model_dump(mode="json", by_alias=True),
        "details": report.model_dump(mode="json", by_alias=True) if report else None,
        "executionTime": format_duration(report.total_duration) if report else "Unknown",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
