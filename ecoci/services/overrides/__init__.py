from ecoci.services.overrides.resolver import OverrideResolver, manifest_dependencies

__all__ = ["OverrideResolver", "manifest_dependencies"]
