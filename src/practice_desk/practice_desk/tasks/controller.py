from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import arg_flag, arg_int, current_principal, json_api, json_body
from ..core.enums import TaskPriority, TaskStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import TaskFilters
from .validation import parse_enum


def register(app: Flask, container: Container) -> None:
    service = container.recurring_task_service

    def _filters() -> TaskFilters:
        status = request.args.get("status")
        priority = request.args.get("priority")
        return TaskFilters(
            status=parse_enum(TaskStatus, status, "status") if status else None,
            priority=parse_enum(TaskPriority, priority, "priority") if priority else None,
            category_id=request.args.get("category_id") or None,
            is_paused=arg_flag("is_paused"),
            search=request.args.get("search") or None,
            due_only=bool(arg_flag("due")),
            limit=arg_int("limit"),
        )

    @app.route("/api/recurring-tasks", methods=["GET"], endpoint="list_recurring_tasks")
    @json_api
    def list_recurring_tasks():
        tasks = service.list_visible_tasks(current_principal(), _filters())
        return jsonify({"success": True, "tasks": [t.to_dict() for t in tasks], "count": len(tasks)})

    @app.route("/api/recurring-tasks", methods=["POST"], endpoint="create_recurring_task")
    @json_api
    def create_recurring_task():
        task = service.create_recurring_task(current_principal(), json_body())
        return jsonify({"success": True, "task": task.to_dict()}), 201

    @app.route("/api/recurring-tasks/<task_id>", methods=["GET"], endpoint="get_recurring_task")
    @json_api
    def get_recurring_task(task_id: str):
        task = service.get_task(current_principal(), task_id)
        return jsonify({"success": True, "task": task.to_dict()})

    @app.route("/api/recurring-tasks/<task_id>", methods=["PUT"], endpoint="update_recurring_task")
    @json_api
    def update_recurring_task(task_id: str):
        task = service.update_recurring_task(current_principal(), task_id, json_body())
        return jsonify({"success": True, "task": task.to_dict()})

    @app.route("/api/recurring-tasks/<task_id>", methods=["DELETE"], endpoint="delete_recurring_task")
    @json_api
    def delete_recurring_task(task_id: str):
        principal = current_principal()
        if request.args.get("option") == "stop":
            task = service.stop_task(principal, task_id)
            return jsonify({"success": True, "message": "Task stopped", "task": task.to_dict()})
        service.delete_task(principal, task_id)
        return jsonify({"success": True, "message": "Task deleted"})

    @app.route("/api/recurring-tasks/<task_id>/pause", methods=["PATCH"], endpoint="pause_recurring_task")
    @json_api
    def pause_recurring_task(task_id: str):
        task = service.pause_task(current_principal(), task_id)
        return jsonify({"success": True, "task": task.to_dict()})

    @app.route("/api/recurring-tasks/<task_id>/resume", methods=["PATCH"], endpoint="resume_recurring_task")
    @json_api
    def resume_recurring_task(task_id: str):
        task = service.resume_task(current_principal(), task_id)
        return jsonify({"success": True, "task": task.to_dict()})

    @app.route("/api/recurring-tasks/<task_id>/complete", methods=["PATCH"], endpoint="complete_recurring_task")
    @json_api
    def complete_recurring_task(task_id: str):
        data = request.get_json(silent=True) or {}
        outcome = service.complete_cycle(
            current_principal(),
            task_id,
            arn_number=data.get("arn_number"),
            arn_name=data.get("arn_name"),
        )
        body = {"success": True, **outcome.to_dict()}
        if outcome.visit_failures:
            body["warning"] = f"{len(outcome.visit_failures)} client visit(s) could not be recorded"
        return jsonify(body)

    @app.route(
        "/api/recurring-tasks/<task_id>/completion-report",
        methods=["GET"],
        endpoint="recurring_task_completion_report",
    )
    @json_api
    def recurring_task_completion_report(task_id: str):
        report = service.completion_report(current_principal(), task_id)
        return jsonify({"success": True, **report.to_dict()})

    @app.route("/api/task-completions", methods=["GET"], endpoint="list_task_completions")
    @json_api
    def list_task_completions():
        task_id = request.args.get("task_id")
        if not task_id:
            raise ValidationError.for_field("task_id", "task_id is required")
        records = service.list_completions(current_principal(), task_id, request.args.get("client_id") or None)
        return jsonify({"success": True, "completions": [r.to_dict() for r in records]})

    @app.route("/api/task-completions", methods=["PUT"], endpoint="set_task_completions")
    @json_api
    def set_task_completions():
        data = json_body()
        task_id = data.get("task_id")
        entries = data.get("completions")
        if not task_id:
            raise ValidationError.for_field("task_id", "task_id is required")
        if not isinstance(entries, list):
            raise ValidationError.for_field("completions", "completions must be a list")

        result = service.bulk_set_completion(task_id, current_principal(), entries)
        status = 207 if result.has_failures else 200
        return jsonify({"success": not result.has_failures, **result.to_dict()}), status
