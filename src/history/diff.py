"""Field-level diffs and human-readable summaries for history entries."""

from typing import Any

from shared_types import EntityKind, EntityRef, HistoryAction

from .models import FieldChange

_KIND_LABELS = {
    EntityKind.ACCEPTANCE_CRITERIA: "AC",
}


def compute_changes(
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
) -> dict[str, FieldChange]:
    """Shallow diff: keys present in both snapshots whose values differ.

    Keys only on one side are not reported. Nested values compare by
    equality, not recursively.
    """
    if not before or not after:
        return {}
    return {
        key: FieldChange(from_=before[key], to=after[key])
        for key in before.keys() & after.keys()
        if before[key] != after[key]
    }


def _label(kind: EntityKind) -> str:
    return _KIND_LABELS.get(kind, kind.value.replace("_", " "))


def _identifier(ref: EntityRef, *snapshots: dict | None) -> str:
    for snap in snapshots:
        if not snap:
            continue
        for key in ("code", "title", "name"):
            if snap.get(key):
                return str(snap[key])
    return ref.id[:8]


def summarize(
    action: HistoryAction,
    ref: EntityRef,
    before: dict | None = None,
    after: dict | None = None,
    changes: dict[str, FieldChange] | None = None,
) -> str:
    label = _label(ref.kind)
    ident = _identifier(ref, after, before)
    title = label if label.isupper() else label.capitalize()

    if action == HistoryAction.CREATED:
        return f"Created {label}: {ident}"
    if action == HistoryAction.DELETED:
        return f"Deleted {label}: {ident}"
    if action == HistoryAction.STATUS_CHANGED or (
        action == HistoryAction.UPDATED and changes and "status" in changes
    ):
        status = (after or {}).get("status")
        if status is None and changes and "status" in changes:
            status = changes["status"].to
        return f"{title} {ident} → {status}"
    if action == HistoryAction.UPDATED:
        if changes:
            return f"Updated {label}: {ident} ({', '.join(sorted(changes))})"
        return f"Updated {label}: {ident}"
    if action == HistoryAction.VERIFIED:
        result = (after or {}).get("verification_result", "verified")
        return f"{title} {ident}: {result}"
    if action == HistoryAction.ASSIGNED:
        assignee = (after or {}).get("assigned_to")
        return f"Assigned {label} {ident} to {assignee}" if assignee else f"Unassigned {label} {ident}"
    if action == HistoryAction.COMMENTED:
        return f"Comment on {label}: {ident}"
    return f"{action.value} {label}: {ident}"
