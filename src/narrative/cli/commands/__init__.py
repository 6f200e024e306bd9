"""CLI command modules for Narrative.

Each module exposes a ``register(subparsers)`` function that wires up
its argparse sub-commands and sets ``parser.set_defaults(func=handler)``.
"""

from . import identity, profiles, trust
from .identity import cmd_identity_init, cmd_identity_reset, cmd_identity_show, cmd_identity_update
from .profiles import cmd_graph, cmd_profiles
from .trust import cmd_trust_list, cmd_trust_revoke, cmd_trust_set, cmd_trust_verify

# All command modules with register() functions, in registration order.
COMMAND_MODULES = [
    identity,
    trust,
    profiles,
]

__all__ = [
    "COMMAND_MODULES",
    "cmd_graph",
    "cmd_identity_init",
    "cmd_identity_reset",
    "cmd_identity_show",
    "cmd_identity_update",
    "cmd_profiles",
    "cmd_trust_list",
    "cmd_trust_revoke",
    "cmd_trust_set",
    "cmd_trust_verify",
]
