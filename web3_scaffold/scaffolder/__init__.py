"""web3-scaffold scaffolder -- plans and writes the NFT monorepo.

Quick usage::

    from web3_scaffold.config import ScaffoldConfig
    from web3_scaffold.scaffolder import ProjectGenerator

    config = ScaffoldConfig(target_dir=Path("./bushido-nft"), minimal=True)
    generator = ProjectGenerator(config)
    result = await generator.generate()
"""

from web3_scaffold.scaffolder.generator import (
    CommandFailedError,
    ConflictError,
    GeneratedFile,
    ProjectGenerator,
    ScaffoldError,
    ScaffoldResult,
    ScaffoldStep,
)
from web3_scaffold.scaffolder.templates import TemplateRenderer

__all__ = [
    "CommandFailedError",
    "ConflictError",
    "GeneratedFile",
    "ProjectGenerator",
    "ScaffoldError",
    "ScaffoldResult",
    "ScaffoldStep",
    "TemplateRenderer",
]
