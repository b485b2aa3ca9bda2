"""ACL permission engine.

Grants, revokes and evaluates bitmask permissions for users, groups (with
per-member role filtering), the public and predefined roles against typed
resources stored in a shared SQL database.
"""

__version__ = "0.1.0"
