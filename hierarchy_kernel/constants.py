"""
Hierarchy Kernel — Default Values

All defaults live here as module-level constants.
Runtime overrides are injected through HierarchyStore / backend settings.
"""

# --- Persistence ---
STORAGE_KEY: str = "orgflow_v1"
PROJECTS_STORAGE_KEY: str = "projects"

# --- Access control ---
PRIVILEGED_ROLE: str = "admin"

# --- Seeding ---
SEED_ROLE_NAME: str = "CEO"
SEED_NODE_NAME: str = "Alex Sharma"

# --- Identifiers ---
NODE_ID_PREFIX: str = "n"
ROLE_ID_PREFIX: str = "r"
ID_SUFFIX_LENGTH: int = 7

# --- Display ---
UNASSIGNED_ROLE_LABEL: str = "Unassigned"
