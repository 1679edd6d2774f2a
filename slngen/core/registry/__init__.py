from .models import CSHARP_PROJECT_TYPE_GUID, GeneratorManifest, ProjectEntry, ProjectKind

__all__ = [
    "CSHARP_PROJECT_TYPE_GUID",
    "GeneratorManifest",
    "ProjectEntry",
    "ProjectKind",
]
