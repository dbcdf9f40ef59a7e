from __future__ import annotations

import logging

from flask import Flask, jsonify, request

from ..common.datetime_utils import format_iso_date, parse_iso_date
from ..common.validators import require_positive_id
from ..common.web import (
    admin_required,
    arg_date,
    arg_int,
    current_role,
    current_user_id,
    error_response,
    json_body,
    login_required,
)
from ..container import Container
from ..core.enums import RegistrationStatus, Role
from ..core.exceptions import DomainError, ValidationError
from .model import PlanItem

logger = logging.getLogger(__name__)


def _parse_plan(raw) -> list[PlanItem]:
    if not isinstance(raw, list):
        raise ValidationError("registrations must be a list")
    items = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ValidationError("Each registration must be an object")
        items.append(
            PlanItem(
                work_date=parse_iso_date(str(entry.get("work_date") or "")),
                work_shift_id=require_positive_id(entry.get("work_shift_id"), "work_shift_id"),
                note=entry.get("note"),
            )
        )
    return items


def _parse_status(value):
    if not value:
        return None
    try:
        return RegistrationStatus(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown status: {value}")


def _parse_ids(data: dict) -> list[int]:
    ids = data.get("ids")
    if not isinstance(ids, list) or not ids:
        raise ValidationError("ids must be a non-empty list")
    return [require_positive_id(i, "id") for i in ids]


def register(app: Flask, container: Container) -> None:
    @app.route("/shift_registrations", methods=["GET"], endpoint="list_registrations")
    @login_required
    def list_registrations():
        try:
            rows = container.registration_service.list_registrations(
                current_role=current_role(),
                current_user_id=current_user_id(),
                week_start=arg_date("week_start"),
                status=_parse_status(request.args.get("status")),
                user_id=arg_int("user_id"),
                start=arg_date("start_date"),
                end=arg_date("end_date"),
            )
            return jsonify(list(rows))
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/my_registrations", methods=["GET"], endpoint="my_registrations")
    @login_required
    def my_registrations():
        data = container.registration_service.get_my_registrations(user_id=current_user_id())
        return jsonify(
            {
                "current_week": [r.to_dict() for r in data["current_week"]],
                "next_week": [r.to_dict() for r in data["next_week"]],
                "current_week_start": format_iso_date(data["current_week_start"]),
                "next_week_start": format_iso_date(data["next_week_start"]),
                "can_register_next_week": data["can_register_next_week"],
            }
        )

    @app.route("/shift_registrations/available_shifts", methods=["GET"], endpoint="available_shifts")
    @login_required
    def available_shifts():
        try:
            user_id = current_user_id()
            if current_role() == Role.ADMIN:
                user_id = arg_int("user_id") or user_id
            shifts = container.registration_service.available_shifts(user_id=user_id)
            return jsonify([s.to_dict() for s in shifts])
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/pending", methods=["GET"], endpoint="pending_registrations")
    @admin_required
    def pending_registrations():
        try:
            week_start = arg_date("week_start")
            if week_start:
                return jsonify(
                    container.registration_service.pending_overview(current_role=current_role(), week_start=week_start)
                )
            return jsonify(list(container.registration_service.list_pending(current_role=current_role())))
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/schedule", methods=["GET"], endpoint="week_schedule")
    @login_required
    def week_schedule():
        try:
            week_start = arg_date("week_start") or container.registration_service.next_week_start()
            groups = container.registration_service.week_schedule(
                week_start=week_start,
                position_id=arg_int("position_id"),
                include_pending=current_role() == Role.ADMIN and request.args.get("include_pending") == "1",
            )
            return jsonify(groups)
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/week_summary", methods=["GET"], endpoint="week_summary")
    @login_required
    def week_summary():
        try:
            user_id = current_user_id()
            if current_role() == Role.ADMIN:
                user_id = arg_int("user_id") or user_id
            week_start = arg_date("week_start") or container.registration_service.next_week_start()
            return jsonify(container.registration_service.week_summary_for_user(user_id=user_id, week_start=week_start))
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/bulk_create", methods=["POST"], endpoint="submit_week_plan")
    @login_required
    def submit_week_plan():
        try:
            data = json_body()
            week_start = parse_iso_date(str(data["week_start"])) if data.get("week_start") else None
            result = container.registration_service.submit_week_plan(
                current_role=current_role(),
                current_user_id=current_user_id(),
                user_id=require_positive_id(data.get("user_id") or current_user_id(), "user_id"),
                week_start=week_start,
                plan=_parse_plan(data.get("registrations", [])),
                override_quota=bool(data.get("override_quota", False)),
            )
            return jsonify(result.to_dict()), (201 if result.ok else 409)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("Unexpected error while saving a week plan")
            return jsonify({"error": "server_error", "message": "System error while saving registrations"}), 500

    @app.route("/shift_registrations/<int:registration_id>", methods=["DELETE"], endpoint="cancel_registration")
    @login_required
    def cancel_registration(registration_id: int):
        try:
            container.registration_service.cancel_registration(
                current_role=current_role(), current_user_id=current_user_id(), registration_id=registration_id
            )
            return jsonify({"id": registration_id, "message": "Registration cancelled"})
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/<int:registration_id>/approve", methods=["POST"], endpoint="approve_registration")
    @admin_required
    def approve_registration(registration_id: int):
        try:
            container.approval_service.approve(
                current_role=current_role(), registration_id=registration_id, approver_id=current_user_id()
            )
            return jsonify({"id": registration_id, "status": RegistrationStatus.APPROVED.value})
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/<int:registration_id>/reject", methods=["POST"], endpoint="reject_registration")
    @admin_required
    def reject_registration(registration_id: int):
        try:
            container.approval_service.reject(
                current_role=current_role(),
                registration_id=registration_id,
                approver_id=current_user_id(),
                reason=json_body().get("reason"),
            )
            return jsonify({"id": registration_id, "status": RegistrationStatus.REJECTED.value})
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/bulk_approve", methods=["POST"], endpoint="bulk_approve_registrations")
    @admin_required
    def bulk_approve_registrations():
        try:
            return jsonify(
                container.approval_service.bulk_approve(
                    current_role=current_role(),
                    registration_ids=_parse_ids(json_body()),
                    approver_id=current_user_id(),
                )
            )
        except DomainError as e:
            return error_response(e)

    @app.route("/shift_registrations/bulk_reject", methods=["POST"], endpoint="bulk_reject_registrations")
    @admin_required
    def bulk_reject_registrations():
        try:
            data = json_body()
            return jsonify(
                container.approval_service.bulk_reject_for_user(
                    current_role=current_role(),
                    registration_ids=_parse_ids(data),
                    approver_id=current_user_id(),
                    reason=data.get("reason"),
                )
            )
        except DomainError as e:
            return error_response(e)

    # Administrative override: bypasses the registration window and quotas.

    @app.route("/admin/shift_registrations", methods=["POST"], endpoint="admin_quick_add")
    @admin_required
    def admin_quick_add():
        try:
            data = json_body()
            reg = container.override_service.quick_add(
                current_role=current_role(),
                admin_user_id=current_user_id(),
                user_id=data.get("user_id"),
                work_shift_id=data.get("work_shift_id"),
                work_date=parse_iso_date(str(data.get("work_date") or "")),
                note=data.get("note"),
            )
            return jsonify(reg.to_dict()), 201
        except DomainError as e:
            return error_response(e)

    @app.route("/admin/shift_registrations/<int:registration_id>", methods=["PATCH"], endpoint="admin_quick_edit")
    @admin_required
    def admin_quick_edit(registration_id: int):
        try:
            data = json_body()
            fields = {key: data[key] for key in ("work_shift_id", "note", "admin_note") if key in data}
            if data.get("work_date"):
                fields["work_date"] = parse_iso_date(str(data["work_date"]))
            reg = container.override_service.quick_edit(
                current_role=current_role(), registration_id=registration_id, **fields
            )
            return jsonify(reg.to_dict())
        except DomainError as e:
            return error_response(e)

    @app.route("/admin/shift_registrations/<int:registration_id>", methods=["DELETE"], endpoint="admin_quick_delete")
    @admin_required
    def admin_quick_delete(registration_id: int):
        try:
            container.override_service.quick_delete(current_role=current_role(), registration_id=registration_id)
            return jsonify({"id": registration_id, "message": "Registration deleted"})
        except DomainError as e:
            return error_response(e)

    @app.route("/admin/shift_registrations/bulk_update", methods=["POST"], endpoint="admin_bulk_update")
    @admin_required
    def admin_bulk_update():
        try:
            updates = json_body().get("updates")
            if not isinstance(updates, list):
                raise ValidationError("updates must be a list")
            return jsonify(
                container.override_service.bulk_edit(
                    current_role=current_role(), updates=[u for u in updates if isinstance(u, dict)]
                )
            )
        except DomainError as e:
            return error_response(e)
