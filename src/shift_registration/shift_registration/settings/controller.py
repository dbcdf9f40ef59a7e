from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import admin_required, current_role, error_response, json_body, login_required
from ..container import Container
from ..core.exceptions import DomainError, ValidationError


def register(app: Flask, container: Container) -> None:
    @app.route("/settings", methods=["GET"], endpoint="get_settings")
    @login_required
    def get_settings():
        return jsonify(container.quota_service.get_policy().to_dict())

    @app.route("/settings", methods=["PATCH"], endpoint="update_settings")
    @admin_required
    def update_settings():
        try:
            data = json_body()
            changes = data.get("app_setting", data)
            if not isinstance(changes, dict):
                raise ValidationError("app_setting must be an object")
            policy = container.quota_service.update_policy(current_role=current_role(), changes=changes)
            return jsonify(policy.to_dict())
        except DomainError as e:
            return error_response(e)
