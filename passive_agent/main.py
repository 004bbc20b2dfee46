import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query

from passive_agent.api_schemas import (
    CheckTestResponse,
    ChecksResponse,
    ConfigResponse,
    HealthResponse,
    SchedulerStatsResponse,
)
from passive_agent.config import settings
from passive_agent.errors import CheckError, InvalidTimeoutError
from passive_agent.listener import PassiveListener
from passive_agent.registry import build_registry, load_agent_config
from passive_agent.scheduler import CallerClass, LocalScheduler

logging.basicConfig(
    level=settings.AGENT_LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

registry = build_registry(
    version=settings.AGENT_VERSION,
    hostname=settings.AGENT_HOSTNAME,
    config=load_agent_config(settings.AGENT_CONFIG_PATH),
)
scheduler = LocalScheduler(
    registry,
    default_timeout=settings.AGENT_TIMEOUT,
    max_workers=settings.AGENT_MAX_WORKERS,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    listener = PassiveListener(
        settings.AGENT_LISTEN_IP,
        settings.AGENT_LISTEN_PORT,
        scheduler=scheduler,
        version=settings.AGENT_VERSION,
        allowed_peers=settings.AGENT_ALLOWED_PEERS,
        read_timeout_s=settings.AGENT_TIMEOUT,
    )
    listener.start()
    try:
        yield
    finally:
        listener.stop()
        scheduler.shutdown()


app = FastAPI(
    title="Passive Agent",
    version=settings.AGENT_VERSION,
    description=(
        "Monitoring agent that answers passive checks over the agent protocol "
        "in both the JSON and the plain-text dialect."
    ),
    lifespan=lifespan,
)


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["system"],
    summary="Health Check",
    description="Liveness endpoint used by probes and orchestration.",
)
def health():
    return {"status": "ok"}


@app.get(
    "/config",
    response_model=ConfigResponse,
    tags=["system"],
    summary="Current Effective Config",
    description="Returns non-secret runtime config values.",
)
def config():
    return {
        "version": settings.AGENT_VERSION,
        "hostname": settings.AGENT_HOSTNAME,
        "listen_ip": settings.AGENT_LISTEN_IP,
        "listen_port": settings.AGENT_LISTEN_PORT,
        "timeout": settings.AGENT_TIMEOUT,
        "allowed_peers": list(settings.AGENT_ALLOWED_PEERS),
    }


@app.get(
    "/api/checks",
    response_model=ChecksResponse,
    tags=["checks"],
    summary="Supported Metrics",
    description="Metric names the agent can answer, plus configured aliases and denied keys.",
)
def checks():
    metrics = registry.describe()
    return {
        "metrics": metrics,
        "aliases": registry.config.aliases,
        "deny_keys": registry.config.deny_keys,
        "count": len(metrics),
    }


@app.get(
    "/api/checks/test",
    response_model=CheckTestResponse,
    tags=["checks"],
    summary="Test a Metric",
    description="Runs one item key through the scheduler and returns its value.",
)
def checks_test(
    key: str = Query(..., min_length=1, description="Item key, e.g. net.tcp.port[,22]"),
    timeout: str = Query(default="", description="Timeout such as 3 or 10s; empty uses the agent default"),
):
    try:
        timeout_s = scheduler.parse_timeout(timeout)
    except InvalidTimeoutError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        value = scheduler.execute(key, timeout_s, CallerClass.HTTP)
    except CheckError as exc:
        if exc.message.startswith("Unknown metric"):
            raise HTTPException(status_code=404, detail=exc.message)
        raise HTTPException(status_code=422, detail=exc.message)
    return {"key": key, "value": value}


@app.get(
    "/api/scheduler/stats",
    response_model=SchedulerStatsResponse,
    tags=["checks"],
    summary="Scheduler Counters",
    description="Check executions per caller class and outcome.",
)
def scheduler_stats():
    return {"default_timeout": scheduler.default_timeout, "counters": scheduler.stats()}
