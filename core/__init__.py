"""core/ -- Configuration kernel. No imports from any other SessionVault package."""
