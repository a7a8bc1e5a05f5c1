"""Constants for the Vault Engine Operator."""

# API Group
API_GROUP = "engine.kubevault.com"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_GCP_ROLE = "GCPRole"
KIND_AWS_ROLE = "AWSRole"

# Plurals
PLURAL_GCP_ROLE = "gcproles"
PLURAL_AWS_ROLE = "awsroles"

# Resource names used in finalizer registry ids
RESOURCE_GCP_ROLE = "gcprole"
RESOURCE_AWS_ROLE = "awsrole"

# Finalizers
GCP_ROLE_FINALIZER = f"{RESOURCE_GCP_ROLE}.{API_GROUP}"
AWS_ROLE_FINALIZER = f"{RESOURCE_AWS_ROLE}.{API_GROUP}"

# Controller name used in structured logs
CONTROLLER_NAME = "vault-engine-operator"

# Phases
PHASE_SUCCESS = "Success"
PHASE_FAILURE = "Failure"

# Condition Types
COND_FAILURE = "Failure"

# Condition Statuses
COND_STATUS_TRUE = "True"

# Condition Reasons
REASON_FAILED_TO_CREATE_ROLE = "FailedToCreateRole"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_ROLE_CREATED = "RoleCreated"
EVENT_REASON_ROLE_DELETED = "RoleDeleted"
EVENT_REASON_FINALIZATION_STARTED = "FinalizationStarted"
EVENT_REASON_FINALIZATION_TIMED_OUT = "FinalizationTimedOut"

# Watch event types
EVENT_DELETED = "DELETED"

# Etcd storage backend
ETCD_TLS_ASSET_DIR = "/etc/vault/storage/etcd/tls/"
ETCD_TLS_ASSET_VOLUME = "vault-etcd-tls"
ETCD_CLIENT_CA_NAME = "ca.crt"
ETCD_CLIENT_CERT_NAME = "tls.crt"
ETCD_CLIENT_KEY_NAME = "tls.key"
ETCD_USERNAME_ENV = "ETCD_USERNAME"
ETCD_PASSWORD_ENV = "ETCD_PASSWORD"

# Vault secret engine mount points
GCP_MOUNT_POINT = "gcp"
AWS_MOUNT_POINT = "aws"
