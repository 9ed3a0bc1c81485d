"""JSON manifests for the generated pnpm/Turborepo workspace.

Manifests are built as plain dicts and serialised with a fixed layout, so the
output is byte-for-byte reproducible.
"""

from __future__ import annotations

import json
from typing import Any

from ..config import ScaffoldConfig

NODE_ENGINE = ">=18.0.0"
PNPM_VERSION = "pnpm@8.15.4"

# Workspace packages in build order; the minimal setup keeps the first two.
PACKAGES: tuple[str, ...] = ("contracts", "frontend", "backend", "scripts")


def dump_json(data: dict[str, Any]) -> str:
    """Serialise a manifest: two-space indent, trailing newline, key order kept."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def workspace_packages(config: ScaffoldConfig) -> list[str]:
    """Names of the workspace packages this run generates."""
    return list(PACKAGES[:2] if config.minimal else PACKAGES)


# ---------------------------------------------------------------------------
# Root workspace
# ---------------------------------------------------------------------------


def root_package_json(config: ScaffoldConfig) -> dict[str, Any]:
    packages = workspace_packages(config)
    scripts: dict[str, str] = {
        "build": "turbo run build",
        "dev": "turbo run dev --parallel",
        "lint": "turbo run lint",
        "test": "turbo run test",
        "test:contracts": "pnpm --filter ./contracts test",
        "deploy:testnet": "pnpm --filter ./contracts deploy:testnet",
        "deploy:mainnet": "pnpm --filter ./contracts deploy:mainnet",
    }
    if "scripts" in packages:
        scripts["generate:whitelist"] = "pnpm --filter ./scripts generate:whitelist"
        scripts["generate:metadata"] = "pnpm --filter ./scripts generate:metadata"
    if "backend" in packages:
        scripts["start:api"] = "pnpm --filter ./backend start"

    return {
        "name": config.project_name,
        "version": "0.1.0",
        "private": True,
        "description": config.description,
        "packageManager": PNPM_VERSION,
        "engines": {"node": NODE_ENGINE},
        "scripts": scripts,
        "devDependencies": {
            "@types/node": "^20.11.0",
            "eslint": "^8.56.0",
            "prettier": "^3.2.5",
            "turbo": "^1.12.4",
            "typescript": "^5.3.3",
        },
    }


def turbo_json() -> dict[str, Any]:
    return {
        "$schema": "https://turbo.build/schema.json",
        "pipeline": {
            "build": {
                "dependsOn": ["^build"],
                "outputs": ["dist/**", ".next/**", "!.next/cache/**", "artifacts/**", "typechain-types/**"],
            },
            "dev": {"cache": False, "persistent": True},
            "lint": {},
            "test": {"dependsOn": ["build"], "outputs": []},
        },
    }


def base_tsconfig(**compiler_options: Any) -> dict[str, Any]:
    """A strict tsconfig; *compiler_options* override the defaults."""
    options: dict[str, Any] = {
        "target": "es2020",
        "module": "commonjs",
        "moduleResolution": "node",
        "strict": True,
        "esModuleInterop": True,
        "skipLibCheck": True,
        "resolveJsonModule": True,
        "forceConsistentCasingInFileNames": True,
    }
    options.update(compiler_options)
    return {"compilerOptions": options}


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------


def contracts_package_json(config: ScaffoldConfig) -> dict[str, Any]:
    return {
        "name": f"{config.package_scope}/contracts",
        "version": "0.1.0",
        "private": True,
        "scripts": {
            "build": "hardhat compile",
            "test": "hardhat test",
            "coverage": "hardhat coverage",
            "deploy:testnet": f"hardhat run scripts/deploy.ts --network {config.chain.testnet_name}",
            "deploy:mainnet": f"hardhat run scripts/deploy.ts --network {config.chain.mainnet_name}",
            "verify": f"hardhat run scripts/verify.ts --network {config.chain.testnet_name}",
        },
        "dependencies": {
            "@openzeppelin/contracts": "^5.0.1",
        },
        "devDependencies": {
            "@nomicfoundation/hardhat-toolbox": "^4.0.0",
            "dotenv": "^16.4.1",
            "hardhat": "^2.19.5",
            "hardhat-gas-reporter": "^1.0.10",
            "merkletreejs": "^0.3.11",
            "keccak256": "^1.0.6",
            "ts-node": "^10.9.2",
            "typescript": "^5.3.3",
        },
    }


def frontend_package_json(config: ScaffoldConfig) -> dict[str, Any]:
    port = config.ports.frontend
    return {
        "name": f"{config.package_scope}/frontend",
        "version": "0.1.0",
        "private": True,
        "scripts": {
            "dev": f"next dev --port {port}",
            "build": "next build",
            "start": f"next start --port {port}",
            "lint": "next lint",
        },
        "dependencies": {
            "@tanstack/react-query": "^5.18.1",
            "next": "14.1.0",
            "react": "^18.2.0",
            "react-dom": "^18.2.0",
            "viem": "^2.7.6",
            "wagmi": "^2.5.7",
        },
        "devDependencies": {
            "@types/react": "^18.2.55",
            "@types/react-dom": "^18.2.19",
            "eslint-config-next": "14.1.0",
            "typescript": "^5.3.3",
        },
    }


def frontend_tsconfig() -> dict[str, Any]:
    config = base_tsconfig(
        target="es2017",
        lib=["dom", "dom.iterable", "esnext"],
        allowJs=True,
        noEmit=True,
        module="esnext",
        moduleResolution="bundler",
        isolatedModules=True,
        jsx="preserve",
        incremental=True,
        plugins=[{"name": "next"}],
        paths={"@/*": ["./src/*"]},
    )
    config["include"] = ["next-env.d.ts", "**/*.ts", "**/*.tsx", ".next/types/**/*.ts"]
    config["exclude"] = ["node_modules"]
    return config


def backend_package_json(config: ScaffoldConfig) -> dict[str, Any]:
    return {
        "name": f"{config.package_scope}/backend",
        "version": "0.1.0",
        "private": True,
        "main": "dist/index.js",
        "scripts": {
            "dev": "ts-node-dev --respawn src/index.ts",
            "build": "tsc -p tsconfig.json",
            "start": "node dist/index.js",
        },
        "dependencies": {
            "cors": "^2.8.5",
            "dotenv": "^16.4.1",
            "express": "^4.18.2",
        },
        "devDependencies": {
            "@types/cors": "^2.8.17",
            "@types/express": "^4.17.21",
            "ts-node-dev": "^2.0.0",
            "typescript": "^5.3.3",
        },
    }


def scripts_package_json(config: ScaffoldConfig) -> dict[str, Any]:
    return {
        "name": f"{config.package_scope}/scripts",
        "version": "0.1.0",
        "private": True,
        "scripts": {
            "generate:whitelist": "ts-node src/generate-merkle.ts",
            "generate:metadata": "ts-node src/generate-metadata.ts",
        },
        "dependencies": {
            "keccak256": "^1.0.6",
            "merkletreejs": "^0.3.11",
        },
        "devDependencies": {
            "@types/node": "^20.11.0",
            "ts-node": "^10.9.2",
            "typescript": "^5.3.3",
        },
    }
