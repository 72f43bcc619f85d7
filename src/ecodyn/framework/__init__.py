"""
Component framework.

Systems are built up from blueprints. Each blueprint provides one
component, may bring other blueprints along, and declares what it
requires and conflicts with. ``System.add`` checks all of this before
any expansion, so that a system is never left half-updated.
"""

from ecodyn.framework.component import (
    Component,
    Blueprint,
    BlueprintSum,
    declare_conflicts,
)
from ecodyn.framework.exceptions import (
    FrameworkError,
    BlueprintArgumentError,
    BlueprintCheckFailure,
    checkfails,
    AddException,
    AddError,
    MissingRequiredComponent,
    ConflictWithSystemComponent,
    ConflictWithBroughtComponent,
    BroughtAlreadyInValue,
    InconsistentForSameComponent,
    HookCheckFailure,
    PropertyError,
    WriteError,
)
from ecodyn.framework.system import System, Property
from ecodyn.framework.views import NodesView, EdgesView

__all__ = [
    'Component',
    'Blueprint',
    'BlueprintSum',
    'declare_conflicts',
    'FrameworkError',
    'BlueprintArgumentError',
    'BlueprintCheckFailure',
    'checkfails',
    'AddException',
    'AddError',
    'MissingRequiredComponent',
    'ConflictWithSystemComponent',
    'ConflictWithBroughtComponent',
    'BroughtAlreadyInValue',
    'InconsistentForSameComponent',
    'HookCheckFailure',
    'PropertyError',
    'WriteError',
    'System',
    'Property',
    'NodesView',
    'EdgesView',
]
