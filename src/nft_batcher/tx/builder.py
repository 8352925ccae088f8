"""
Transaction Builder - turns operation requests into contract calls and deployments.

Validation is purely local: a request that does not match its catalog
entry fails here, before any nonce is allocated or network call is made.
"""

import re
from pathlib import Path
from typing import Any, List, Optional

import structlog

from nft_batcher.config import BatcherConfig
from nft_batcher.core.catalog import DEFAULT_CATALOG, ArgSpec, ArgType, CatalogEntry, OperationCatalog
from nft_batcher.core.request import OperationRequest, TransactionIntent, TypedArg

logger = structlog.get_logger(__name__)

# Stacks contract names: a letter, then letters, digits, '-' or '_'; at most 40 characters
CONTRACT_NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]{0,39}$")


class ValidationError(Exception):
    """Raised when a request does not match its catalog entry."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


def _check_value(spec: ArgSpec, value: Any) -> None:
    """Validate a single argument value against its ArgSpec."""
    if spec.arg_type == ArgType.UINT:
        # bool is an int subclass but never a valid amount or id
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(spec.name, f"expected a non-negative integer, got {value!r}")
        if value < 0:
            raise ValidationError(spec.name, "must be non-negative")
        if spec.price and value == 0:
            raise ValidationError(spec.name, "must be greater than zero")

    elif spec.arg_type == ArgType.PRINCIPAL:
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(spec.name, "address must be non-empty")
        if spec.target:
            address, _, name = value.strip().partition(".")
            if not address or not name:
                raise ValidationError(spec.name, "expected <address>.<contract-name>")

    elif spec.arg_type == ArgType.STRING:
        if not isinstance(value, str):
            raise ValidationError(spec.name, f"expected a string, got {value!r}")

    elif spec.arg_type == ArgType.BOOL:
        if not isinstance(value, bool):
            raise ValidationError(spec.name, f"expected a boolean, got {value!r}")


class TransactionBuilder:
    """
    Builds transaction intents from operation requests.

    Catalog contracts are addressed at the configured deployer
    (``contract_address``); the fee and post-condition mode also come
    from the configuration.
    """

    def __init__(
        self,
        config: BatcherConfig,
        catalog: Optional[OperationCatalog] = None,
    ):
        """
        Initialize the transaction builder.

        Args:
            config: Batcher configuration
            catalog: Operation catalog (uses the default if not provided)
        """
        self.config = config
        self.catalog = catalog or DEFAULT_CATALOG

    def build(self, request: OperationRequest) -> TransactionIntent:
        """
        Build an (unsigned, nonce-less) intent for a request.

        Args:
            request: The request to translate

        Returns:
            TransactionIntent for the request

        Raises:
            ValidationError: If the request does not match its catalog entry
        """
        entry = self.catalog.get(request.kind)
        if entry is None:
            raise ValidationError("kind", f"unknown operation {request.kind!r}")

        self.validate(entry, request)

        if entry.deploys:
            return self._build_deploy(entry, request)

        arguments = request.arguments
        call_args: List[TypedArg] = [
            TypedArg(spec.name, spec.arg_type, self._normalize(spec, arguments[spec.name]))
            for spec in entry.args
            if not spec.target
        ]

        intent = TransactionIntent(
            kind=entry.kind.value,
            contract_id=self._contract_id(entry, request),
            function_name=entry.function_name,
            args=tuple(call_args),
            fee=self.config.tx_fee,
            post_condition_mode=self.config.post_condition_mode,
        )

        logger.debug(
            "intent_built",
            kind=intent.kind,
            contract=intent.contract_id,
            function=intent.function_name,
        )
        return intent

    def validate(self, entry: CatalogEntry, request: OperationRequest) -> None:
        """
        Check argument count, names and values against a catalog entry.

        Raises:
            ValidationError: On the first mismatch found
        """
        arguments = request.arguments

        for spec in entry.args:
            if spec.name not in arguments or arguments[spec.name] is None:
                raise ValidationError(spec.name, "missing argument")

        for name in arguments:
            if entry.get_arg(name) is None:
                raise ValidationError(name, f"unexpected argument for {entry.kind.value}")

        for spec in entry.args:
            _check_value(spec, arguments[spec.name])

    def _build_deploy(self, entry: CatalogEntry, request: OperationRequest) -> TransactionIntent:
        """Build a deployment of ``<sender>.<contract_name>`` from its source file."""
        arguments = request.arguments
        name = arguments["contract_name"].strip()
        if not CONTRACT_NAME_PATTERN.match(name):
            raise ValidationError("contract_name", f"invalid contract name {name!r}")

        if not self.config.sender_address:
            raise ValidationError("sender_address", "no sender address to deploy from")

        path = Path(arguments["source_path"])
        try:
            code_body = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ValidationError("source_path", f"cannot read {path}: {e.strerror or e}") from e
        if not code_body.strip():
            raise ValidationError("source_path", f"{path} is empty")

        intent = TransactionIntent(
            kind=entry.kind.value,
            contract_id=f"{self.config.sender_address}.{name}",
            function_name=None,
            args=(),
            fee=self.config.tx_fee,
            post_condition_mode=self.config.post_condition_mode,
            code_body=code_body,
            clarity_version=self.config.clarity_version,
        )

        logger.debug("deploy_intent_built", contract=intent.contract_id, size=len(code_body))
        return intent

    def _contract_id(self, entry: CatalogEntry, request: OperationRequest) -> str:
        target = entry.target_arg
        if target is not None:
            return request.arguments[target.name].strip()

        if not self.config.contract_address:
            raise ValidationError("contract_address", "no contract deployer address configured")
        return f"{self.config.contract_address}.{entry.contract_name}"

    @staticmethod
    def _normalize(spec: ArgSpec, value: Any) -> Any:
        if spec.arg_type == ArgType.PRINCIPAL:
            return value.strip()
        return value
