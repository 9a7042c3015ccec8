"""
Load and validate a mint launch configuration from YAML.
"""

import os
from typing import Any

import yaml
from dotenv import load_dotenv
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from mint_launcher.core.errors import ConfigurationError, LayoutError
from mint_launcher.core.pubkeys import MAX_U64
from mint_launcher.core.wallet import Wallet
from mint_launcher.launcher.assembler import ComputeBudget
from mint_launcher.launcher.config import SUPPORTED_CLUSTERS, MetadataFields, MintConfig
from mint_launcher.token2022.extensions import SUPPORTED_MINT_EXTENSIONS, ExtensionType

REQUIRED_FIELDS = [
    "name",
    "rpc_endpoint",
    "private_key",
    "mint.decimals",
    "metadata.name",
    "metadata.symbol",
]

CONFIG_VALIDATION_RULES = [
    ("mint.decimals", int, 0, 255, "mint.decimals must be an integer between 0 and 255"),
    ("issuance.amount", int, 0, MAX_U64, "issuance.amount must be a non-negative integer below 2^64"),
    ("retries.max_attempts", int, 1, 100, "retries.max_attempts must be between 1 and 100"),
    ("priority_fees.compute_unit_limit", int, 1, 1_400_000, "priority_fees.compute_unit_limit must be between 1 and 1400000"),
    ("priority_fees.unit_price", int, 0, MAX_U64, "priority_fees.unit_price must be a non-negative integer"),
]

# Valid values for enum-like fields
VALID_VALUES = {
    "cluster": list(SUPPORTED_CLUSTERS),
}


def load_raw_config(path: str) -> dict:
    """Read the YAML file, load its env_file and resolve ${VAR} references."""
    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e!s}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e!s}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    env_file = config.get("env_file")
    if env_file:
        env_path = os.path.join(os.path.dirname(path), env_file)
        if os.path.exists(env_path):
            load_dotenv(env_path, override=True)
        else:
            load_dotenv(env_file, override=True)

    resolve_env_vars(config)
    validate_config(config)
    return config


def resolve_env_vars(config: dict) -> None:
    """Recursively resolve environment variables in the configuration."""
    def resolve_env(value):
        if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
            env_var = value[2:-1]
            env_value = os.getenv(env_var)
            if env_value is None:
                raise ConfigurationError(f"Environment variable '{env_var}' not found")
            return env_value
        return value

    def resolve_all(node):
        if isinstance(node, dict):
            for k, v in node.items():
                if isinstance(v, (dict, list)):
                    resolve_all(v)
                else:
                    node[k] = resolve_env(v)
        elif isinstance(node, list):
            for i, v in enumerate(node):
                if isinstance(v, (dict, list)):
                    resolve_all(v)
                else:
                    node[i] = resolve_env(v)

    resolve_all(config)


def get_nested_value(config: dict, path: str) -> Any:
    """Get a nested value from the configuration using dot notation."""
    keys = path.split(".")
    value = config
    for key in keys:
        if not isinstance(value, dict) or key not in value:
            raise KeyError(path)
        value = value[key]
    return value


def validate_config(config: dict) -> None:
    """Validate the raw configuration against the rules above."""
    for path in REQUIRED_FIELDS:
        try:
            get_nested_value(config, path)
        except KeyError:
            raise ConfigurationError(f"Missing required config key: {path}") from None

    for path, expected_type, min_val, max_val, error_msg in CONFIG_VALIDATION_RULES:
        try:
            value = get_nested_value(config, path)
        except KeyError:
            continue
        if not isinstance(value, expected_type) or isinstance(value, bool):
            raise ConfigurationError(f"Type error: {error_msg}")
        if not (min_val <= value <= max_val):
            raise ConfigurationError(f"Range error: {error_msg}")

    for path, valid_values in VALID_VALUES.items():
        try:
            value = get_nested_value(config, path)
        except KeyError:
            continue
        if value not in valid_values:
            raise ConfigurationError(f"{path} must be one of {valid_values}")

    rpc_endpoint = config["rpc_endpoint"]
    if not isinstance(rpc_endpoint, str) or not rpc_endpoint.startswith(("http://", "https://")):
        raise ConfigurationError("Invalid RPC endpoint. Must start with http:// or https://")

    extensions = config.get("mint", {}).get("extensions", [])
    if not isinstance(extensions, list):
        raise ConfigurationError("mint.extensions must be a list of extension names")


def _parse_pubkey(value: Any, label: str) -> Pubkey | None:
    if value is None or value == "":
        return None
    try:
        return Pubkey.from_string(str(value))
    except ValueError as e:
        raise ConfigurationError(f"{label} is not a valid address: {value!r}") from e


def _parse_wallet(value: Any, label: str) -> Wallet | None:
    if value is None or value == "":
        return None
    try:
        return Wallet(str(value))
    except ConfigurationError as e:
        raise ConfigurationError(f"{label}: {e!s}") from e


def _parse_extensions(names: list[Any]) -> tuple[ExtensionType, ...]:
    extensions = []
    for name in names:
        try:
            extension = ExtensionType.from_name(str(name))
        except LayoutError as e:
            raise ConfigurationError(str(e)) from e
        if extension not in SUPPORTED_MINT_EXTENSIONS:
            raise ConfigurationError(
                f"Extension '{name}' is not supported; choose from "
                f"{sorted(e.config_name for e in SUPPORTED_MINT_EXTENSIONS)}"
            )
        extensions.append(extension)
    if ExtensionType.METADATA_POINTER not in extensions:
        extensions.append(ExtensionType.METADATA_POINTER)
    return tuple(extensions)


def _parse_additional(value: Any) -> tuple[tuple[str, str], ...]:
    """Accept a list of [key, value] pairs or a mapping (order preserved)."""
    if value is None:
        return ()
    if isinstance(value, dict):
        items = list(value.items())
    elif isinstance(value, list):
        items = []
        for entry in value:
            if not isinstance(entry, (list, tuple)) or len(entry) != 2:
                raise ConfigurationError(
                    "metadata.additional entries must be [key, value] pairs"
                )
            items.append((entry[0], entry[1]))
    else:
        raise ConfigurationError("metadata.additional must be a list of pairs or a mapping")
    return tuple((str(k), str(v)) for k, v in items)


def build_mint_config(config: dict) -> MintConfig:
    """Turn a validated raw configuration into a MintConfig."""
    mint_section = config.get("mint", {})
    authorities = config.get("authorities", {}) or {}
    metadata = config["metadata"]
    issuance = config.get("issuance", {}) or {}

    mint_keypair = None
    mint_private_key = mint_section.get("private_key")
    if mint_private_key:
        mint_keypair = _parse_wallet(mint_private_key, "mint.private_key").keypair

    mint_config = MintConfig(
        name=str(config["name"]),
        payer=_parse_wallet(config["private_key"], "private_key"),
        decimals=mint_section["decimals"],
        extensions=_parse_extensions(mint_section.get("extensions", [])),
        mint_keypair=mint_keypair,
        mint_authority=_parse_wallet(
            authorities.get("mint_authority_private_key"), "authorities.mint_authority_private_key"
        ),
        update_authority=_parse_wallet(
            authorities.get("update_authority_private_key"),
            "authorities.update_authority_private_key",
        ),
        freeze_authority=_parse_pubkey(
            authorities.get("freeze_authority"), "authorities.freeze_authority"
        ),
        close_authority=_parse_pubkey(
            authorities.get("close_authority"), "authorities.close_authority"
        ),
        permanent_delegate=_parse_pubkey(
            authorities.get("permanent_delegate"), "authorities.permanent_delegate"
        ),
        metadata=MetadataFields(
            name=str(metadata["name"]),
            symbol=str(metadata["symbol"]),
            uri=str(metadata.get("uri") or ""),
            additional=_parse_additional(metadata.get("additional")),
        ),
        holder_owner=_parse_pubkey(issuance.get("owner"), "issuance.owner"),
        issue_amount=issuance.get("amount", 0),
        cluster=config.get("cluster", "devnet"),
    )
    mint_config.validate()
    return mint_config


def build_compute_budget(config: dict) -> ComputeBudget | None:
    """Compute budget prefix, only when a priority fee is configured."""
    fees = config.get("priority_fees") or {}
    if not fees.get("enabled", False):
        return None
    return ComputeBudget(
        unit_limit=fees.get("compute_unit_limit", 200_000),
        unit_price_microlamports=fees.get("unit_price", 0),
    )


def load_mint_config(path: str) -> tuple[dict, MintConfig]:
    """Load a YAML file and return the raw config and the validated MintConfig.

    Raises:
        ConfigurationError: If anything is missing or invalid
    """
    raw = load_raw_config(path)
    return raw, build_mint_config(raw)


def print_config_summary(config: dict, mint_config: MintConfig) -> None:
    """Print a summary of the launch configuration without secrets."""
    print(f"Mint launch: {config.get('name', 'unnamed')}")
    print(f"Cluster: {mint_config.cluster}")
    print(f"Payer: {mint_config.payer.pubkey}")
    print(f"Mint authority: {mint_config.mint_authority_wallet.pubkey}")
    print(f"Update authority: {mint_config.update_authority_wallet.pubkey}")
    print(f"Decimals: {mint_config.decimals}")
    print(f"Extensions: {[e.config_name for e in mint_config.resolved_extensions]}")
    print(f"Metadata: {mint_config.metadata.name} ({mint_config.metadata.symbol})")
    for key, value in mint_config.metadata.additional:
        print(f"  {key}: {value}")
    print(f"Issuance: {mint_config.issue_amount} base units to {mint_config.resolved_holder_owner}")
    print("Configuration loaded successfully!")
