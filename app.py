import os
import logging
import secrets
from flask import Flask, request, jsonify
from pydantic import ValidationError
from dispatcher.dispatcher import Dispatcher
from dispatcher.exception import RuntimeUnavailable, UnsupportedLanguage
from dispatcher.meta import ExecutionRequest
from dispatcher.config import SANDBOX_TOKEN

os.makedirs("logs", exist_ok=True)
logging.basicConfig(
    filename="logs/sandbox.log",
    level=logging.DEBUG,
)
app = Flask(__name__)
if __name__ != "__main__":
    # let flask app use gunicorn's logger
    gunicorn_logger = logging.getLogger("gunicorn.error")
    app.logger.handlers = gunicorn_logger.handlers
    app.logger.setLevel(gunicorn_logger.level)
    logging.getLogger().setLevel(gunicorn_logger.level)

    # Allow overriding log level via environment variable
    if os.getenv("JUDGE_DEBUG", "").lower() == "true":
        app.logger.setLevel(logging.DEBUG)
        logging.getLogger().setLevel(logging.DEBUG)
logger = app.logger

DISPATCHER = Dispatcher()


def _token() -> str:
    return (request.headers.get("X-Sandbox-Token")
            or request.values.get("token", ""))


def _error(msg: str, status_code: int, data=None):
    return jsonify({
        "status": "err",
        "msg": msg,
        "data": data,
    }), status_code


@app.post("/execute")
def execute():
    if not secrets.compare_digest(_token(), SANDBOX_TOKEN):
        logger.debug("get invalid token")
        return "invalid token", 403

    payload = request.get_json(silent=True)
    if payload is None:
        return _error("request body must be JSON", 400)
    try:
        execution_request = ExecutionRequest.model_validate(payload)
    except ValidationError as e:
        return _error("invalid request", 400,
                      e.errors(include_url=False, include_context=False))

    try:
        summary = DISPATCHER.execute(execution_request)
    except UnsupportedLanguage as e:
        return _error(str(e), 400)
    except RuntimeUnavailable as e:
        logger.error(f"sandbox unavailable: {e}")
        return _error(
            "sandbox is unavailable now.\n"
            "please wait a moment and re-send the code.",
            503,
        )
    return jsonify({
        "status": "ok",
        "msg": "ok",
        "data": summary.model_dump(mode="json"),
    })


@app.get("/status")
def status():
    ret = {
        "load":
        DISPATCHER.container_count / DISPATCHER.MAX_CONTAINER_SIZE,
    }
    # if token is provided
    if secrets.compare_digest(SANDBOX_TOKEN, _token()):
        ret.update({
            "containerCount": DISPATCHER.container_count,
            "maxContainerCount": DISPATCHER.MAX_CONTAINER_SIZE,
            "executions": [*DISPATCHER.executions.keys()],
            "languages": [*DISPATCHER.registry.languages],
        })
    return jsonify(ret), 200


# for local debug
# if __name__ == "__main__":
#     app.run(host="0.0.0.0", port=5000, debug=True)
