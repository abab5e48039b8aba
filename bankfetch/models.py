"""Value types shared by providers, the orchestrator and the data store."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ExecutionContext(BaseModel):
    """Run-wide flags handed to every provider instance.

    Attributes:
        debug: Show the browser window and log every automation step.
    """

    model_config = ConfigDict(frozen=True)

    debug: bool = False


class AccountBalance(BaseModel):
    """A single account balance as reported by an institution."""

    model_config = ConfigDict(frozen=True)

    institution: str
    account_name: str
    account_number: str
    balance: Decimal


class StatementDocument(BaseModel):
    """A statement discovered (and optionally downloaded) for an account."""

    model_config = ConfigDict(frozen=True)

    institution: str
    account_number: str
    statement_id: str
    end_date: str
    path: str | None = None

    @property
    def filename(self) -> str:
        return (
            f"{self.end_date} {self.institution} {self.account_number} "
            f"Statement {self.statement_id}.pdf"
        )


class RelationshipStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class RelationshipResult(BaseModel):
    """Outcome of processing one relationship.

    ``error``, ``documents_error`` and ``logout_error`` are already redacted
    and safe to print.
    """

    name: str
    provider: str
    status: RelationshipStatus = RelationshipStatus.SUCCEEDED
    stage: str | None = None
    error: str | None = None
    balances: int = 0
    documents: int = 0
    documents_error: str | None = None
    logout_error: str | None = None

    def fail(self, stage: str, error: str) -> None:
        self.status = RelationshipStatus.FAILED
        self.stage = stage
        self.error = error


class RunSummary(BaseModel):
    """Aggregate result of a fetch run."""

    results: list[RelationshipResult] = Field(default_factory=list)
    balances: list[AccountBalance] = Field(default_factory=list)

    @property
    def balances_written(self) -> int:
        return len(self.balances)

    @property
    def succeeded(self) -> int:
        return self._count(RelationshipStatus.SUCCEEDED)

    @property
    def failed(self) -> int:
        return self._count(RelationshipStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(RelationshipStatus.SKIPPED)

    def _count(self, status: RelationshipStatus) -> int:
        return sum(1 for result in self.results if result.status is status)
