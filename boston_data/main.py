import logging
from contextlib import asynccontextmanager
from typing import Any, Dict

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from config_loader import get_config

from .portal_client import CkanClient
from .tools import TOOLS, TOOL_MAP

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

client = CkanClient.from_settings(get_config().ckan)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await client.close()


app = FastAPI(title="Boston Open Data MCP Gateway", lifespan=lifespan)


def _text_result(call_id: Any, text: str, is_error: bool = False) -> Dict[str, Any]:
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return {"jsonrpc": "2.0", "id": call_id, "result": result}


@app.post("/", response_class=JSONResponse)
async def json_rpc_gateway(payload: Dict[str, Any]):
    method = payload.get("method")
    call_id = payload.get("id")
    if not method:
        raise HTTPException(status_code=400, detail="Missing method")

    if method == "tools/list":
        return {"jsonrpc": "2.0", "id": call_id, "result": {"tools": TOOLS}}

    if method == "tools/call":
        params = payload.get("params", {})
        tool_name = params.get("name")
        args = params.get("arguments", {})
        if tool_name not in TOOL_MAP:
            return _text_result(call_id, f"Unknown tool {tool_name}", is_error=True)
        try:
            text = await TOOL_MAP[tool_name](client, **args)
            return _text_result(call_id, text)
        except Exception as exc:
            logger.exception("Tool %s failed", tool_name)
            return _text_result(call_id, f"Error: {exc}", is_error=True)

    raise HTTPException(status_code=400, detail="Unsupported method")
