"""
HTTP surface for the execution pipeline.

    GET  /health              registry state and version
    GET  /inspect?url=...     metadata and flattened actions
    POST /execute             {url, account, params, dry_run}
    GET  /protocols           protocol catalog

Run with:  uvicorn solana_blinks.server:app
"""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .catalog import get_kamino_lend_vaults, list_protocols
from .errors import BlinkError
from .ledger import SolanaRpcClient
from .logging_config import set_run_id
from .models import ExecutionRequest
from .pipeline import ExecutionPipeline
from .wallet import Wallet

logger = logging.getLogger(__name__)

app = FastAPI(title="Solana Blinks")


class ExecuteBody(BaseModel):
    url: str
    account: str
    params: Dict[str, Any] = Field(default_factory=dict)
    dry_run: bool = False


def get_pipeline() -> ExecutionPipeline:
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is None:
        pipeline = ExecutionPipeline(ledger=SolanaRpcClient(), signer=Wallet.try_from_env())
        app.state.pipeline = pipeline
    return pipeline


@app.middleware("http")
async def _run_id(request: Request, call_next):
    set_run_id(request.headers.get("X-Request-ID"))
    return await call_next(request)


@app.exception_handler(BlinkError)
async def _blink_error(request: Request, exc: BlinkError):
    logger.info("%s %s failed: %s", request.method, request.url.path, exc.kind)
    return JSONResponse(status_code=exc.code, content=exc.to_dict())


@app.get("/health")
def health():
    registry = get_pipeline().registry
    return {"status": "ok", "version": __version__, "registry": registry.stats()}


@app.get("/inspect")
async def inspect(url: str):
    result = await get_pipeline().inspect(url)
    return result.to_dict()


@app.post("/execute")
async def execute(body: ExecuteBody):
    request = ExecutionRequest(
        raw_url=body.url,
        account=body.account,
        params=body.params,
        dry_run=body.dry_run,
    )
    result = await get_pipeline().execute(request)
    return result.to_dict()


@app.get("/protocols")
def protocols():
    return {"protocols": list_protocols(), "kaminoVaults": get_kamino_lend_vaults()}
