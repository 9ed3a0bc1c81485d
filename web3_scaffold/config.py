"""web3-scaffold configuration.

A single typed, immutable record describing one scaffolding run.  Built once
by the CLI (defaults, then ``W3S_*`` environment variables, then an optional
JSON config file, then command-line flags) and passed to the generator.
"""

from __future__ import annotations

import json
import os
import re
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils import derive_symbol, sanitize_name, to_pascal

LogLevel = Literal["debug", "info", "warning", "error"]

# Plain fixed-point ether amount: no sign, no exponent, at most wei precision.
_PRICE_RE = re.compile(r"^(?:\d+(?:\.\d{1,18})?|\.\d{1,18})$")


class ChainConfig(BaseModel):
    """Target EVM networks written into the Hardhat config and ``.env.example``."""

    model_config = ConfigDict(frozen=True)

    testnet_name: str = Field(default="abstractTestnet")
    testnet_chain_id: int = Field(default=11124, ge=1)
    testnet_rpc_url: str = Field(default="https://api.testnet.abs.xyz")
    mainnet_name: str = Field(default="abstract")
    mainnet_chain_id: int = Field(default=2741, ge=1)
    mainnet_rpc_url: str = Field(default="https://api.mainnet.abs.xyz")
    explorer_url: str = Field(default="https://abscan.org")


class PortConfig(BaseModel):
    """Development server ports for the generated frontend and backend."""

    model_config = ConfigDict(frozen=True)

    frontend: int = Field(default=3000, ge=1024, le=65535)
    backend: int = Field(default=3001, ge=1024, le=65535)

    @model_validator(mode="after")
    def _distinct(self) -> "PortConfig":
        if self.frontend == self.backend:
            raise ValueError("frontend and backend ports must differ")
        return self


class PrerequisiteConfig(BaseModel):
    """Minimum versions of the external tools the generated project needs."""

    model_config = ConfigDict(frozen=True)

    node: str = Field(default="18.0.0")
    pnpm: str = Field(default="8.0.0")
    git: str = Field(default="2.0.0")

    def minimums(self) -> dict[str, str]:
        """Return a plain ``{tool: minimum_version}`` mapping."""
        return {"node": self.node, "pnpm": self.pnpm, "git": self.git}


class ScaffoldConfig(BaseModel):
    """Everything one scaffolding run needs to know.

    Instances are frozen: the CLI builds one, and every other component only
    reads it.
    """

    model_config = ConfigDict(frozen=True)

    target_dir: Path = Field(default=Path("./web3-project"))
    project_name: str = Field(default="", description="npm-safe slug; derived from target_dir when empty")
    description: str = Field(default="A community-driven NFT collection")
    collection_symbol: str = Field(default="", max_length=11, pattern=r"^[A-Za-z0-9]*$")
    max_supply: int = Field(default=10000, ge=1)
    mint_price_eth: str = Field(default="0.08")
    max_per_wallet: int = Field(default=5, ge=1)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    ports: PortConfig = Field(default_factory=PortConfig)
    prerequisites: PrerequisiteConfig = Field(default_factory=PrerequisiteConfig)

    minimal: bool = Field(default=False, description="Only workspace, contracts and frontend")
    skip_prerequisites: bool = Field(default=False)
    force: bool = Field(default=False, description="Overwrite files that already exist")
    install: bool = Field(default=False, description="Run `pnpm install` after generation")
    init_git: bool = Field(default=False, description="Run `git init` after generation")
    dry_run: bool = Field(default=False)

    log_level: LogLevel = Field(default="info")
    log_file: Path | None = Field(default=None)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @field_validator("mint_price_eth")
    @classmethod
    def _valid_price(cls, value: str) -> str:
        # Written verbatim into Solidity (`N ether`) and `parseEther("N")`.
        value = value.strip()
        if not _PRICE_RE.match(value):
            raise ValueError(
                "mint price must be a non-negative decimal number such as 0.08 "
                f"(no sign or exponent, at most 18 decimals): {value!r}"
            )
        return format(Decimal(value), "f")

    @field_validator("description")
    @classmethod
    def _single_line(cls, value: str) -> str:
        # Rendered into `/// @notice` comments and string literals.
        collapsed = " ".join(value.split())
        if not collapsed.isprintable():
            raise ValueError("description must not contain control characters")
        return collapsed

    @model_validator(mode="after")
    def _derive_names(self) -> "ScaffoldConfig":
        # Frozen model: derived defaults are filled through object.__setattr__.
        name = sanitize_name(self.project_name or self.target_dir.resolve().name)
        if not name:
            raise ValueError("could not derive a project name; pass one explicitly")
        object.__setattr__(self, "project_name", name)
        if not self.collection_symbol:
            object.__setattr__(self, "collection_symbol", derive_symbol(name))
        object.__setattr__(self, "collection_symbol", self.collection_symbol.upper())
        return self

    # ------------------------------------------------------------------
    # Derived values (read-only properties)
    # ------------------------------------------------------------------

    @property
    def display_name(self) -> str:
        """Human readable project title, e.g. ``Bushido Nft``."""
        return " ".join(part.capitalize() for part in self.project_name.split("-"))

    @property
    def contract_name(self) -> str:
        """Solidity contract identifier, always ending in ``NFT``."""
        base = to_pascal(self.project_name)
        if base.lower().endswith("nft"):
            base = base[:-3]
        if not base or base[0].isdigit():
            base = f"Project{base}"
        return f"{base}NFT"

    @property
    def package_scope(self) -> str:
        """npm scope shared by the workspace packages."""
        return f"@{self.project_name}"

    @property
    def mint_price_wei(self) -> int:
        """Mint price converted to wei."""
        return int(Decimal(self.mint_price_eth) * Decimal(10) ** 18)

    def context(self) -> dict[str, Any]:
        """Build the Jinja2 template context for this run."""
        return {
            "project_name": self.project_name,
            "display_name": self.display_name,
            "description": self.description,
            "contract_name": self.contract_name,
            "collection_symbol": self.collection_symbol,
            "package_scope": self.package_scope,
            "max_supply": self.max_supply,
            "mint_price_eth": self.mint_price_eth,
            "mint_price_wei": self.mint_price_wei,
            "max_per_wallet": self.max_per_wallet,
            "chain": self.chain.model_dump(),
            "ports": self.ports.model_dump(),
            "minimal": self.minimal,
        }

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path, **overrides: Any) -> "ScaffoldConfig":
        """Load a configuration from JSON, applying keyword *overrides* on top."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate({**_parse_config(raw), **overrides})

    @classmethod
    def env_overrides(cls) -> dict[str, Any]:
        """Collect settings from ``W3S_*`` environment variables.

        Recognised variables (all optional):
            W3S_TARGET_DIR, W3S_PROJECT_NAME, W3S_DESCRIPTION, W3S_SYMBOL,
            W3S_MAX_SUPPLY, W3S_MINT_PRICE, W3S_MINIMAL, W3S_SKIP_PREREQUISITES,
            W3S_LOG_LEVEL, W3S_LOG_FILE.
        """
        mapping = {
            "W3S_TARGET_DIR": "target_dir",
            "W3S_PROJECT_NAME": "project_name",
            "W3S_DESCRIPTION": "description",
            "W3S_SYMBOL": "collection_symbol",
            "W3S_MAX_SUPPLY": "max_supply",
            "W3S_MINT_PRICE": "mint_price_eth",
            "W3S_MINIMAL": "minimal",
            "W3S_SKIP_PREREQUISITES": "skip_prerequisites",
            "W3S_LOG_LEVEL": "log_level",
            "W3S_LOG_FILE": "log_file",
        }
        return {
            field: os.environ[var]
            for var, field in mapping.items()
            if os.environ.get(var)
        }

    @classmethod
    def from_env(cls, **overrides: Any) -> "ScaffoldConfig":
        """Build a config from ``W3S_*`` variables plus keyword *overrides*."""
        return cls.model_validate({**cls.env_overrides(), **overrides})


def read_config_file(path: str | Path) -> dict[str, Any]:
    """Read a JSON config file into a plain dict (no validation)."""
    return _parse_config(Path(path).read_text(encoding="utf-8"))


def _parse_config(raw: str) -> dict[str, Any]:
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("configuration file must contain a JSON object")
    return data
