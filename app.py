import json
import logging
import sys
from typing import Any, Optional, Tuple

import click
from flask import Flask, jsonify, request
from jsonschema import Draft7Validator

from config import Config, configure_logging
from services.models import Diagnostic, ScheduleFailure
from services.scheduling import compute_schedule, failure_to_dict, schedule_to_dict

logger = logging.getLogger(__name__)

TASK_LIST_SCHEMA = {
    "type": "array",
    "items": {"type": "object"},
}

REQUEST_SCHEMA = {
    "oneOf": [
        {
            "type": "object",
            "properties": {"tasks": TASK_LIST_SCHEMA},
            "required": ["tasks"],
        },
        TASK_LIST_SCHEMA,
    ]
}

STATUS_BY_CATEGORY = {
    "validation": 400,
    "cycle": 400,
    "anomaly": 422,
    "internal": 500,
}


def extract_tasks(data: Any) -> Tuple[Optional[list], Optional[ScheduleFailure]]:
    """Pull the task list out of a request body, or describe why it can't."""
    if not Draft7Validator(REQUEST_SCHEMA).is_valid(data):
        return None, ScheduleFailure(
            category="validation",
            diagnostics=(Diagnostic(
                "invalid_request",
                "Request body must be {\"tasks\": [...]} or a list of task objects.",
            ),),
        )
    tasks = data["tasks"] if isinstance(data, dict) else data
    return tasks, None


def create_app(config: Optional[Config] = None) -> Flask:
    config = config or Config.from_env()
    configure_logging(config.log_level)

    app = Flask(__name__)
    app.config["CPM"] = config

    @app.get("/api/health")
    def health():
        return jsonify({"ok": True})

    @app.post("/api/analyze")
    def analyze():
        data = request.get_json(force=True, silent=True)
        tasks, failure = extract_tasks(data)
        if failure is not None:
            logger.info("endpoint /api/analyze. Rejected malformed request body")
            return jsonify(failure_to_dict(failure)), 400

        if len(tasks) > config.max_tasks:
            failure = ScheduleFailure(
                category="validation",
                diagnostics=(Diagnostic(
                    "too_many_tasks",
                    f"Too many tasks: {len(tasks)} (limit {config.max_tasks}).",
                ),),
            )
            return jsonify(failure_to_dict(failure)), 413

        result = compute_schedule(tasks)
        if not result.ok:
            logger.info(f"endpoint /api/analyze. {result.category} failure: {result.kinds()}")
            return jsonify(failure_to_dict(result)), STATUS_BY_CATEGORY.get(result.category, 400)

        return jsonify({"ok": True, "result": schedule_to_dict(result)})

    @app.cli.command("schedule")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    def schedule_command(path):
        """Compute the CPM schedule of a JSON task file."""
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        tasks, failure = extract_tasks(data)
        if failure is None:
            result = compute_schedule(tasks)
            if result.ok:
                click.echo(json.dumps(schedule_to_dict(result), indent=2, ensure_ascii=False))
                return
            failure = result
        click.echo(f"{failure.category} error:", err=True)
        for line in failure.messages:
            click.echo(f"  {line}", err=True)
        sys.exit(1)

    return app


app = create_app()

if __name__ == "__main__":
    app.run(debug=app.config["CPM"].debug)
