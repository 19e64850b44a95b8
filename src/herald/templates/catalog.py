"""Declaration catalog for the service-center operations.

Each factory returns the :class:`TargetDeclaration` attached to one
operation. :func:`default_registry` registers all of them under their
operation ids at startup.

Operation results look like ``{"data": <record>, "message": ..., ...}`` and
may additionally be wrapped in the response envelope, so message builders
read the record through :func:`_record`.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from herald.common.constants import ENVELOPE_KEY, NotificationKind
from herald.routing.declarations import (
    AdditionalTarget,
    DeclarationRegistry,
    TargetDeclaration,
)

BOOKING_STATUS_TEXT: dict[str, str] = {
    "PENDING": "is pending confirmation",
    "ASSIGNED": "has been assigned to a technician",
    "CHECKED_IN": "vehicle has been checked in",
    "IN_PROGRESS": "is in progress",
    "CHECKED_OUT": "vehicle has been checked out",
    "COMPLETED": "has been completed",
    "CANCELLED": "has been cancelled",
}


# --- Helpers ---


def _body(result: Any) -> Any:
    """Peel the response envelope off a result, if present."""
    if isinstance(result, Mapping) and "success" in result and ENVELOPE_KEY in result:
        return result[ENVELOPE_KEY]
    return result


def _record(result: Any) -> Any:
    """The primary record of an operation result (its ``data`` field)."""
    body = _body(result)
    if isinstance(body, Mapping) and ENVELOPE_KEY in body:
        return body[ENVELOPE_KEY]
    return body


def _get(node: Any, *keys: str, default: Any = None) -> Any:
    for key in keys:
        if not isinstance(node, Mapping):
            return default
        node = node.get(key)
    return default if node is None else node


def _short_id(value: Any) -> str:
    return str(value)[:8] if value else "N/A"


def format_date(value: Any) -> str:
    """Format a date the way customers see it (``dd/mm/yyyy``)."""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d/%m/%Y")
        except ValueError:
            return value
    return str(value)


def format_amount(value: Any) -> str:
    """Format a VND amount with dot thousands separators."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return str(value)
    return f"{number:,.0f}".replace(",", ".")


# --- Booking (customer) ---


def booking_created() -> TargetDeclaration:
    def message(result: Any) -> str:
        booking = _record(result)
        when = format_date(_get(booking, "bookingDate"))
        return (
            f"Your booking #{_short_id(_get(booking, 'id'))} for {when} "
            "has been created successfully."
        )

    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        message=message,
        target_path="data.customerId",
    )


def booking_created_with_staff() -> TargetDeclaration:
    def message(result: Any) -> str:
        booking = _record(result)
        return f"Your booking #{_short_id(_get(booking, 'id'))} has been created successfully."

    def staff_message(result: Any) -> str:
        booking = _record(result)
        when = format_date(_get(booking, "bookingDate"))
        return f"New booking #{_short_id(_get(booking, 'id'))} scheduled for {when}."

    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        title="Booking created",
        message=message,
        target_path="customerId",
        additional=(
            AdditionalTarget(
                target_path="staffIds",
                message=staff_message,
                title="New booking",
                kind=NotificationKind.BOOKING,
            ),
        ),
    )


def booking_assigned() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        message=lambda result: (
            f"Your booking #{_short_id(_get(_record(result), 'id'))} "
            "has been assigned to a technician."
        ),
        target_path="data.customerId",
    )


def booking_completed() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        message=lambda result: (
            f"Your booking #{_short_id(_get(_record(result), 'id'))} has been completed. "
            "Thank you for using our service!"
        ),
        target_path="data.customerId",
    )


def booking_cancelled() -> TargetDeclaration:
    def message(result: Any) -> str:
        return f"Your booking #{_short_id(_get(_record(result), 'id'))} has been cancelled."

    def staff_message(result: Any) -> str:
        booking = _record(result)
        by = _get(_body(result), "cancelledBy", default="the customer")
        return f"Booking #{_short_id(_get(booking, 'id'))} was cancelled by {by}."

    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        title="Booking cancelled",
        message=message,
        target_path="customerId",
        additional=(
            AdditionalTarget(
                target_path="staffIds",
                message=staff_message,
                title="Booking cancelled",
                kind=NotificationKind.BOOKING,
            ),
        ),
    )


def booking_status_update() -> TargetDeclaration:
    def message(result: Any) -> str:
        booking = _record(result)
        status = _get(booking, "status", default="")
        text = BOOKING_STATUS_TEXT.get(status, status)
        return f"Your booking #{_short_id(_get(booking, 'id'))} {text}."

    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        title="Booking update",
        message=message,
        target_path="data.customerId",
    )


# --- Payment (customer) ---


def payment_success() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.PAYMENT,
        title="Payment received",
        message=lambda result: (
            f"Your payment of {format_amount(_get(_record(result), 'amount', default=0))} VND "
            "has been processed successfully."
        ),
        target_path="data.customerId",
    )


def payment_failed() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.PAYMENT,
        title="Payment failed",
        message=lambda result: (
            f"Your payment of {format_amount(_get(_record(result), 'amount', default=0))} VND "
            "has failed. Please try again."
        ),
        target_path="data.customerId",
    )


# --- Work schedule (employees) ---


def shift_assigned() -> TargetDeclaration:
    def message(result: Any) -> str:
        schedules = _record(result)
        if isinstance(schedules, list) and schedules:
            first = schedules[0]
            shift_name = _get(first, "shift", "name", default="a shift")
            return f"You have been assigned to {shift_name} on {format_date(_get(first, 'date'))}."
        return "You have been assigned a new work schedule."

    return TargetDeclaration(
        kind=NotificationKind.SHIFT,
        title="New shift",
        message=message,
        target_path="data[].employeeId",
    )


def shift_updated() -> TargetDeclaration:
    def message(result: Any) -> str:
        schedule = _record(result)
        shift_name = _get(schedule, "shift", "name", default="a shift")
        when = format_date(_get(schedule, "date"))
        return f"Your shift assignment has been updated: {shift_name} on {when}."

    return TargetDeclaration(
        kind=NotificationKind.SHIFT,
        message=message,
        target_path="data.employeeId",
    )


def shift_cancelled() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.SHIFT,
        message=lambda result: (
            f"Your shift on {format_date(_get(_record(result), 'date'))} has been cancelled."
        ),
        target_path="data.employeeId",
    )


# --- Booking assignment (technicians) ---


def _assignment_booking_id(result: Any) -> str:
    assignment = _record(result)
    booking_id = _get(assignment, "booking", "id") or _get(assignment, "bookingId")
    return _short_id(booking_id)


def technician_assigned_to_booking() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        message=lambda result: (
            f"You have been assigned to booking #{_assignment_booking_id(result)}."
        ),
        target_path="data.employeeId",
    )


def technician_unassigned_from_booking() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        message=lambda result: (
            f"You have been unassigned from booking #{_assignment_booking_id(result)}."
        ),
        target_path="data.employeeId",
    )


# --- Vehicle handover (customer) ---


def vehicle_handover_created() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.BOOKING,
        message=lambda result: (
            "Vehicle handover completed. "
            f"Odometer: {_get(_record(result), 'odometer', default='N/A')} km. "
            "Check your booking for details."
        ),
        target_path="data.booking.customerId",
    )


# --- Membership (customer) ---


def membership_activated() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.MEMBERSHIP,
        message=lambda result: (
            "Your premium membership has been activated! "
            f"Valid until {format_date(_get(_record(result), 'endDate'))}."
        ),
        target_path="data.customerId",
    )


def membership_expiring_soon() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.MEMBERSHIP,
        message=lambda result: (
            "Your premium membership will expire on "
            f"{format_date(_get(_record(result), 'endDate'))}. "
            "Renew now to continue enjoying benefits!"
        ),
        target_path="data.customerId",
    )


def membership_expired() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.MEMBERSHIP,
        message="Your premium membership has expired. Renew now to restore your benefits!",
        target_path="data.customerId",
    )


# --- Parts (technicians and admins) ---


def part_refill_requested() -> TargetDeclaration:
    def message(result: Any) -> str:
        body = _body(result)
        technician = _get(body, "technician", "fullName", default="A technician")
        part = _get(body, "part", "name", default="a part")
        amount = _get(body, "refillAmount", default=0)
        return f"{technician} requested a refill of {amount} for {part}."

    return TargetDeclaration(
        kind=NotificationKind.SYSTEM,
        title="Part refill requested",
        message=message,
        target_path="adminIds",
    )


def part_refill_approved() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.SYSTEM,
        title="Part refill approved",
        message=lambda result: (
            f"Your refill request for {_get(_body(result), 'part', 'name', default='a part')} "
            "has been approved."
        ),
        target_path="technicianId",
    )


# --- Work center and profiles ---


def employee_assigned_to_center() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.SYSTEM,
        message=lambda result: (
            "You have been assigned to "
            f"{_get(_record(result), 'workCenter', 'name', default='a service center')}."
        ),
        target_path="data.employeeId",
    )


def employee_removed_from_center() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.SYSTEM,
        message="You have been removed from your current service center assignment.",
        target_path="data.employeeId",
    )


def employee_profile_updated() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.SYSTEM,
        message="Your profile has been updated by an administrator.",
        target_path="data.id",
    )


def customer_profile_updated() -> TargetDeclaration:
    return TargetDeclaration(
        kind=NotificationKind.SYSTEM,
        message="Your profile has been updated successfully.",
        target_path="data.id",
    )


# --- System ---


def system_maintenance() -> TargetDeclaration:
    # No target path: the invoking actor is notified
    return TargetDeclaration(
        kind=NotificationKind.SYSTEM,
        title="System maintenance",
        message=lambda result: (
            _get(result, "message")
            or "System maintenance scheduled. Please check for updates."
        ),
    )


CATALOG = {
    "booking.created": booking_created,
    "booking.created_with_staff": booking_created_with_staff,
    "booking.assigned": booking_assigned,
    "booking.completed": booking_completed,
    "booking.cancelled": booking_cancelled,
    "booking.status_updated": booking_status_update,
    "payment.succeeded": payment_success,
    "payment.failed": payment_failed,
    "shift.assigned": shift_assigned,
    "shift.updated": shift_updated,
    "shift.cancelled": shift_cancelled,
    "booking_assignment.assigned": technician_assigned_to_booking,
    "booking_assignment.unassigned": technician_unassigned_from_booking,
    "vehicle_handover.created": vehicle_handover_created,
    "membership.activated": membership_activated,
    "membership.expiring_soon": membership_expiring_soon,
    "membership.expired": membership_expired,
    "part.refill_requested": part_refill_requested,
    "part.refill_approved": part_refill_approved,
    "work_center.employee_assigned": employee_assigned_to_center,
    "work_center.employee_removed": employee_removed_from_center,
    "employee.profile_updated": employee_profile_updated,
    "customer.profile_updated": customer_profile_updated,
    "system.maintenance": system_maintenance,
}


def default_registry() -> DeclarationRegistry:
    """Registry with every catalog declaration registered."""
    registry = DeclarationRegistry()
    for operation_id, factory in CATALOG.items():
        registry.register(operation_id, factory())
    return registry


__all__ = [
    "CATALOG",
    "BOOKING_STATUS_TEXT",
    "default_registry",
    "format_date",
    "format_amount",
]
