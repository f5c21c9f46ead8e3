"""enclaveforge CLI — Typer-based command-line interface.

Provides the ``enclaveforge`` command with the ``build``, ``publish``,
``measurement`` and ``clean`` workflows plus ``show-config``.

Diagnostics and tables go to stderr through Rich; stdout carries only the
``MrEnclve:`` line.
"""
