"""
Operation request and transaction intent models.

An OperationRequest is what a batch input asks for; a TransactionIntent is
the fully-formed contract call (or deployment) the builder produces from it.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from nft_batcher.config import PostConditionMode
from nft_batcher.core.catalog import ArgType, OperationKind


def _kind_value(kind: Any) -> str:
    return kind.value if isinstance(kind, OperationKind) else str(kind)


@dataclass(frozen=True)
class OperationRequest:
    """
    One requested domain operation.

    Attributes:
        kind: Operation kind, as named in the catalog
        args: Ordered (name, value) pairs
        source: Where the request came from (e.g. "listings.csv:3")
    """

    kind: str
    args: Tuple[Tuple[str, Any], ...] = ()
    source: Optional[str] = None

    def __post_init__(self):
        """Normalize the kind and freeze the argument mapping."""
        object.__setattr__(self, "kind", _kind_value(self.kind))
        if isinstance(self.args, Mapping):
            object.__setattr__(self, "args", tuple(self.args.items()))
        else:
            object.__setattr__(self, "args", tuple(tuple(pair) for pair in self.args))

    @classmethod
    def create(
        cls,
        kind: Any,
        source: Optional[str] = None,
        **args: Any,
    ) -> "OperationRequest":
        """Create a request from keyword arguments (order is preserved)."""
        return cls(kind=kind, args=tuple(args.items()), source=source)

    @property
    def arguments(self) -> Dict[str, Any]:
        """Get the arguments as an (ordered) dictionary."""
        return dict(self.args)

    def get(self, name: str, default: Any = None) -> Any:
        return self.arguments.get(name, default)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind,
            "args": self.arguments,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OperationRequest":
        """Create from a dictionary produced by to_dict."""
        return cls(
            kind=data["kind"],
            args=tuple((data.get("args") or {}).items()),
            source=data.get("source"),
        )


@dataclass(frozen=True)
class TypedArg:
    """A function argument with its wire type."""
    name: str
    arg_type: ArgType
    value: Any

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": self.arg_type.value,
            "value": self.value,
        }


@dataclass(frozen=True)
class TransactionIntent:
    """
    A contract call or contract deployment ready to be signed and submitted.

    Attributes:
        kind: Operation kind this intent was built from
        contract_id: Target (or deployed) contract as "<address>.<contract-name>"
        function_name: Public function to call (None for a deployment)
        args: Typed function arguments in call order
        fee: Fee in micro-STX
        post_condition_mode: Post-condition policy for the call
        nonce: Account nonce, assigned after allocation
        code_body: Clarity source of a deployment
        clarity_version: Clarity version of a deployment
    """

    kind: str
    contract_id: str
    function_name: Optional[str]
    args: Tuple[TypedArg, ...]
    fee: int
    post_condition_mode: PostConditionMode = PostConditionMode.ALLOW
    nonce: Optional[int] = None
    code_body: Optional[str] = None
    clarity_version: Optional[int] = None

    @property
    def is_deploy(self) -> bool:
        return self.code_body is not None

    @property
    def contract_address(self) -> str:
        return self.contract_id.split(".", 1)[0]

    @property
    def contract_name(self) -> str:
        return self.contract_id.split(".", 1)[1]

    def with_nonce(self, nonce: int) -> "TransactionIntent":
        """Return a copy of this intent with the given nonce assigned."""
        return replace(self, nonce=nonce)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (and signing)."""
        data = {
            "tx_type": "smart_contract" if self.is_deploy else "contract_call",
            "kind": self.kind,
            "contract_address": self.contract_address,
            "contract_name": self.contract_name,
        }
        if self.is_deploy:
            data["code_body"] = self.code_body
            data["clarity_version"] = self.clarity_version
        else:
            data["function_name"] = self.function_name
            data["function_args"] = [arg.to_dict() for arg in self.args]
        data.update(
            fee=self.fee,
            nonce=self.nonce,
            post_condition_mode=self.post_condition_mode.value,
        )
        return data
