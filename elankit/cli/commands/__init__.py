"""
CLI command implementations.

Each module exposes run(args, cfg) -> int.
"""
