"""
qualification.py
----------------
Who can perform a service at all, regardless of the calendar.

A staff member is eligible iff:
- role is a bookable role (Stylist),
- active,
- not flagged emergency-unavailable,
- the service is in their skill set.
"""

from staff.models import StaffMember


def is_qualified(staff, service) -> bool:
    """
    Pure predicate over an already-fetched staff record.
    Uses the prefetched skills cache when the caller prefetched it.
    """
    if staff.role not in StaffMember.BOOKABLE_ROLES:
        return False
    if not staff.is_active or staff.is_emergency_unavailable:
        return False
    return any(skill.pk == service.pk for skill in staff.skills.all())


def qualified_staff(service, branch=None):
    """
    Every eligible staff member for `service`, ordered by id.
    `branch` narrows the result to one location.
    """
    qs = (
        StaffMember.objects.filter(
            role__in=StaffMember.BOOKABLE_ROLES,
            is_active=True,
            is_emergency_unavailable=False,
            skills=service,
        )
        .distinct()
        .prefetch_related("skills")
        .order_by("id")
    )
    if branch:
        qs = qs.filter(branch=branch)
    return [staff for staff in qs if is_qualified(staff, service)]
