"""web3-scaffold: generate a pnpm/Turborepo NFT monorepo, all or nothing."""

__version__ = "0.1.0"
