"""
Maple Expression Package.

Converts maple("...") payloads to Maxima and wraps them for the SW runtime.
"""
from .tree_converter import convert_definition, TreeConverter
from .delegator import Delegator, delegate_definition

__all__ = ['convert_definition', 'TreeConverter', 'Delegator', 'delegate_definition']
