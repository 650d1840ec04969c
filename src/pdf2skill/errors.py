"""Compile errors. Each one is fatal to the current invocation."""

from __future__ import annotations


class CompileError(Exception):
    """Base class for every failure of a skill-pack compile."""


class InputNotFound(CompileError, FileNotFoundError):
    """A declared source path does not exist."""


class EmptyExtraction(CompileError):
    """The normalized source text is empty."""


class NoSemanticContent(CompileError):
    """No block or chunk survived the length filters."""


class InvalidName(CompileError, ValueError):
    """The sanitized skill name is empty."""


class SerializationFailure(CompileError):
    """The folder or zip could not be written."""
