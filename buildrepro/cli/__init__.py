"""buildrepro CLI: Typer-based command-line interface.

Provides the ``buildrepro`` command with subcommands for creating the
catalog, uploading and removing builds, querying the catalog, classifying
reproducibility and comparing builds.

All output uses Rich for formatted terminal display.
"""
