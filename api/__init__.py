"""
Palladium Python API

Provides the Python interface for compiling Palladium code to VM bytecode.
"""

from .context import Context, Script, create_context

__all__ = [
    'Context',
    'Script',
    'create_context',
]
