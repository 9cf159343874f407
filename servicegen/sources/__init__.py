"""Declaration sources feeding the contract compiler."""

from .python_source import DeclarationSourceError, PythonDeclarationSource, module_name_for

__all__ = ["DeclarationSourceError", "PythonDeclarationSource", "module_name_for"]
