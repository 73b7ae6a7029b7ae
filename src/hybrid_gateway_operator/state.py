"""Desired-state enforcement and garbage collection of generated objects."""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

from kubernetes.client.exceptions import ApiException

from . import metrics
from .config import OperatorConfig
from .gvk import GroupVersionKind
from .managedfields import compare, extract_managed_fields, prune_desired_obj
from .metadata import label_selector_for_owned_resources
from .tracing import trace_span
from .utils.errors import ConflictError, OperatorError, is_conflict, is_not_found
from .utils.objects import namespaced_name, object_key

logger = logging.getLogger(__name__)


class EnforceResult(NamedTuple):
    """Outcome of one enforcement pass."""

    requeue: bool = False
    stop: bool = False
    error: Exception | None = None
    applied: int = 0


class CleanResult(NamedTuple):
    """Outcome of one garbage collection pass."""

    kept: list[dict[str, Any]]
    requeue: bool = False
    deleted: int = 0


def _apply(client: Any, obj: dict[str, Any], gvk: GroupVersionKind, root_kind: str, field_manager: str) -> None:
    """Force-apply an object; a 409 becomes a ConflictError naming the object."""
    metadata = obj.get("metadata", {})
    try:
        client.apply(obj, field_manager, force=True)
    except ApiException as e:
        if is_conflict(e):
            metrics.resources_applied_total.labels(kind=root_kind, result="conflict").inc()
            raise ConflictError(gvk, metadata.get("namespace", ""), metadata.get("name", ""), e) from e
        metrics.resources_applied_total.labels(kind=root_kind, result="failure").inc()
        raise
    metrics.resources_applied_total.labels(kind=root_kind, result="success").inc()


def enforce_state(client: Any, converter: Any, config: OperatorConfig) -> EnforceResult:
    """Apply every desired object that differs from what this manager owns.

    For each desired object the live one is fetched. Missing objects are
    applied, objects being deleted are left alone, objects without an apply
    entry for the field manager are applied unconditionally and the rest are
    applied only when the pruned desired object differs from the owned fields.

    Args:
        client: Cluster client
        converter: Converter holding the translated output
        config: Operator configuration

    Returns:
        EnforceResult; ``requeue`` with a ConflictError on a 409

    Raises:
        ApiException: Any non-conflict API failure
        ValidationError: A desired object cannot be compared
    """
    root = converter.get_root_object()
    root_kind = root.get("kind", "")
    field_manager = config.field_manager
    applied = 0

    with trace_span("enforce_state", kind=root_kind, attributes={"root.key": object_key(root)}):
        for desired in converter.get_output_store():
            gvk = GroupVersionKind.from_object(desired)
            metadata = desired.get("metadata", {})
            namespace = metadata.get("namespace", "")
            name = metadata.get("name", "")
            key = namespaced_name(namespace, name)

            try:
                current = client.get(gvk, namespace, name)
                if current is None:
                    logger.debug(f"Creating {gvk.kind} {key}")
                    _apply(client, desired, gvk, root_kind, field_manager)
                    applied += 1
                    continue

                if current.get("metadata", {}).get("deletionTimestamp"):
                    logger.debug(f"{gvk.kind} {key} is being deleted, skipping")
                    continue

                owned = extract_managed_fields(current, field_manager)
                if owned is None:
                    logger.debug(f"{gvk.kind} {key} has no fields owned by {field_manager}, applying")
                    _apply(client, desired, gvk, root_kind, field_manager)
                    applied += 1
                    continue

                comparison = compare(owned, prune_desired_obj(desired))
                if comparison.is_empty():
                    logger.debug(f"{gvk.kind} {key} is up to date")
                    continue

                logger.info(f"Drift detected on {gvk.kind} {key}: {comparison}")
                metrics.drift_detected_total.labels(kind=root_kind, resource_type=gvk.kind).inc()
                _apply(client, desired, gvk, root_kind, field_manager)
                applied += 1
            except ConflictError as e:
                logger.info(f"Conflict while enforcing {gvk.kind} {key}, requeueing: {e}")
                return EnforceResult(requeue=True, error=e, applied=applied)

    return EnforceResult(applied=applied)


def clean_orphaned_resources(
    client: Any,
    converter: Any,
    config: OperatorConfig,
) -> CleanResult:
    """Delete generated objects of the root that are no longer desired.

    Only objects in the root's namespace carrying its ownership labels are
    considered. Per-object failures are logged and counted without stopping
    the pass.

    Args:
        client: Cluster client
        converter: Converter holding the translated output
        config: Operator configuration

    Returns:
        CleanResult; ``kept`` are the live owned objects left in place

    Raises:
        OperatorError: Listing a kind failed
    """
    root = converter.get_root_object()
    root_kind = root.get("kind", "")
    namespace = root.get("metadata", {}).get("namespace", "")
    selector = label_selector_for_owned_resources(root, converter.managed_by)

    desired_keys = set()
    for desired in converter.get_output_store():
        desired_metadata = desired.get("metadata", {})
        desired_keys.add((
            desired_metadata.get("namespace", ""),
            desired_metadata.get("name", ""),
            GroupVersionKind.from_object(desired),
        ))

    requeue = False
    deleted = 0
    kept: list[dict[str, Any]] = []

    with trace_span("clean_orphaned_resources", kind=root_kind, attributes={"root.key": object_key(root)}):
        for gvk in converter.get_expected_gvks():
            try:
                live_objects = client.list(gvk, namespace=namespace, label_selector=selector)
            except ApiException as e:
                raise OperatorError(f"unable to list objects with gvk {gvk} in namespace {namespace}: {e}") from e

            for obj in live_objects:
                metadata = obj.get("metadata", {})
                obj_namespace = metadata.get("namespace", "")
                name = metadata.get("name", "")
                if obj_namespace != namespace:
                    continue
                if (obj_namespace, name, gvk) in desired_keys:
                    kept.append(obj)
                    continue

                key = namespaced_name(obj_namespace, name)
                try:
                    if converter.handle_orphaned_resource(obj):
                        logger.debug(f"Keeping orphan candidate {gvk.kind} {key}")
                        kept.append(obj)
                        continue
                    client.delete(gvk, obj_namespace, name)
                except ConflictError as e:
                    logger.info(f"Conflict while releasing {gvk.kind} {key}, requeueing: {e}")
                    requeue = True
                    continue
                except ApiException as e:
                    if is_not_found(e):
                        continue
                    logger.error(f"Failed to delete orphaned {gvk.kind} {key}: {e}")
                    metrics.orphans_deleted_total.labels(kind=root_kind, result="failure").inc()
                    continue
                logger.info(f"Deleted orphaned {gvk.kind} {key}")
                metrics.orphans_deleted_total.labels(kind=root_kind, result="success").inc()
                deleted += 1

    if deleted:
        logger.debug(f"Deleted {deleted} orphaned object(s) of {root_kind} {object_key(root)}")
    return CleanResult(requeue=requeue, kept=kept, deleted=deleted)
