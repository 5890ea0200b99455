"""
Project runtime package.

Import concrete functionality from explicit submodules:
- `core.runtime.config` for configuration dataclasses
- `core.runtime.bootstrap` for startup helpers
- `core.runtime.context` for runtime context definitions
- `core.runtime.state` for global context accessors
"""

__all__: list[str] = []
