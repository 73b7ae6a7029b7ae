"""Constants for the Hybrid Gateway Operator."""

# API Groups
GATEWAY_API_GROUP = "gateway.networking.k8s.io"
GATEWAY_API_VERSION = "v1"
GATEWAY_API_GROUP_VERSION = f"{GATEWAY_API_GROUP}/{GATEWAY_API_VERSION}"
REFERENCE_GRANT_VERSION = "v1beta1"
KONG_CONFIGURATION_GROUP = "configuration.konghq.com"
KONG_CONFIGURATION_VERSION = "v1alpha1"
KONG_PLUGIN_VERSION = "v1"

# Resource Kinds
KIND_GATEWAY = "Gateway"
KIND_GATEWAY_CLASS = "GatewayClass"
KIND_HTTP_ROUTE = "HTTPRoute"
KIND_REFERENCE_GRANT = "ReferenceGrant"
KIND_SERVICE = "Service"
KIND_NAMESPACE = "Namespace"
KIND_KONG_ROUTE = "KongRoute"
KIND_KONG_SERVICE = "KongService"
KIND_KONG_UPSTREAM = "KongUpstream"
KIND_KONG_TARGET = "KongTarget"
KIND_KONG_PLUGIN = "KongPlugin"
KIND_KONG_PLUGIN_BINDING = "KongPluginBinding"

# Labels
OPERATOR_LABEL_PREFIX = "gateway-operator.konghq.com/"
LABEL_MANAGED_BY = f"{OPERATOR_LABEL_PREFIX}managed-by"
LABEL_MANAGED_BY_NAME = f"{OPERATOR_LABEL_PREFIX}managed-by-name"
LABEL_MANAGED_BY_NAMESPACE = f"{OPERATOR_LABEL_PREFIX}managed-by-namespace"
MANAGED_BY_HTTP_ROUTE = "httproute"
MANAGED_BY_SERVICE = "service"

# Annotations
ANNOTATION_HYBRID_ROUTE = f"{OPERATOR_LABEL_PREFIX}hybrid-route"
ANNOTATION_HYBRID_GATEWAYS = f"{OPERATOR_LABEL_PREFIX}hybrid-gateways"

# Defaults (overridable through OperatorConfig)
DEFAULT_CONTROLLER_NAME = "konghq.com/gateway-operator"
DEFAULT_FIELD_MANAGER = "hybrid-gateway-operator"

# Route kinds used in shared status keys
HTTP_ROUTE_KEY = "httproute"

# Route condition types
COND_ACCEPTED = "Accepted"
COND_RESOLVED_REFS = "ResolvedRefs"
COND_PROGRAMMED = "Programmed"
COND_BACKENDS_PROGRAMMED = "BackendsProgrammed"

# Route condition reasons
REASON_ACCEPTED = "Accepted"
REASON_NO_MATCHING_PARENT = "NoMatchingParent"
REASON_NOT_ALLOWED_BY_LISTENERS = "NotAllowedByListeners"
REASON_NO_MATCHING_LISTENER_HOSTNAME = "NoMatchingListenerHostname"
REASON_RESOLVED_REFS = "ResolvedRefs"
REASON_INVALID_KIND = "InvalidKind"
REASON_BACKEND_NOT_FOUND = "BackendNotFound"
REASON_REF_NOT_PERMITTED = "RefNotPermitted"
REASON_BACKENDS_PROGRAMMED = "BackendsProgrammed"
REASON_BACKENDS_NOT_PROGRAMMED = "BackendsNotProgrammed"

# Condition statuses
STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"

# Listener allowed-routes namespace policies
NAMESPACES_FROM_ALL = "All"
NAMESPACES_FROM_SAME = "Same"
NAMESPACES_FROM_SELECTOR = "Selector"

# Listener protocols
PROTOCOL_HTTP = "HTTP"
PROTOCOL_HTTPS = "HTTPS"
TLS_MODE_TERMINATE = "Terminate"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_RESOURCE_APPLIED = "ResourceApplied"
EVENT_REASON_ORPHAN_DELETED = "OrphanDeleted"
EVENT_REASON_STATUS_UPDATED = "StatusUpdated"
