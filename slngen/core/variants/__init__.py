from .builder import prepare_variant, select_variant_projects, variant_csproj_path, variant_solution_path
from .defines import rewrite_reference_suffix, strip_editor_defines, strip_references, swap_platform_defines
from .models import BuildConfiguration, BuildPlatform, VariantResult, VariantSpec

__all__ = [
    "BuildConfiguration",
    "BuildPlatform",
    "VariantResult",
    "VariantSpec",
    "prepare_variant",
    "rewrite_reference_suffix",
    "select_variant_projects",
    "strip_editor_defines",
    "strip_references",
    "swap_platform_defines",
    "variant_csproj_path",
    "variant_solution_path",
]
