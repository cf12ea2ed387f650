"""
Result comparison logic for conformance testing.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

EXPECTED = "expected"


@dataclass
class Divergence:
    """Represents a divergence between client implementations."""
    field: str
    expected: Any
    actual: Any
    client: str
    reference_client: str
    vector_name: str
    details: Optional[str] = None


@dataclass
class ComparisonResult:
    """Result of comparing outputs from multiple clients."""
    success: bool
    divergences: List[Divergence]
    clients_compared: List[str]

    @property
    def has_divergences(self) -> bool:
        return len(self.divergences) > 0


def _lookup_map(result: Dict[str, Any]) -> Dict[str, str]:
    return {
        f"{q.get('registry')}:{q.get('name')}": q.get("owner", "")
        for q in result.get("lookups", []) or []
    }


class ResultComparator:
    """Compares results from multiple client implementations."""

    def __init__(self, reference_client: str = "ccns-py"):
        """
        Initialize comparator.

        Args:
            reference_client: The client to use as reference (default: ccns-py)
        """
        self.reference_client = reference_client

    def compare_results(
        self,
        results: Dict[str, Dict[str, Any]],
        vector_name: str,
    ) -> ComparisonResult:
        """
        Compare results from all clients against the reference client.

        Args:
            results: Dict mapping client name to their result dict
            vector_name: Name of the test vector

        Returns:
            ComparisonResult with any divergences found
        """
        divergences = []
        clients = list(results.keys())

        if len(clients) < 2:
            return ComparisonResult(
                success=True,
                divergences=[],
                clients_compared=clients,
            )

        if self.reference_client not in results:
            raise ValueError(
                f"Reference client '{self.reference_client}' not in results"
            )
        reference = results[self.reference_client]

        for client, result in results.items():
            if client == self.reference_client:
                continue
            divergences.extend(self._compare_single(
                reference=reference,
                actual=result,
                client=client,
                reference_name=self.reference_client,
                vector_name=vector_name,
            ))

        return ComparisonResult(
            success=len(divergences) == 0,
            divergences=divergences,
            clients_compared=clients,
        )

    def compare_expected(
        self,
        expected: Dict[str, Any],
        results: Dict[str, Dict[str, Any]],
        vector_name: str,
    ) -> ComparisonResult:
        """Compare every client against the vector's recorded expectation."""
        divergences = []
        for client, result in results.items():
            divergences.extend(self._compare_single(
                reference=expected,
                actual=result,
                client=client,
                reference_name=EXPECTED,
                vector_name=vector_name,
            ))
        return ComparisonResult(
            success=len(divergences) == 0,
            divergences=divergences,
            clients_compared=list(results.keys()),
        )

    def _compare_single(
        self,
        reference: Dict[str, Any],
        actual: Dict[str, Any],
        client: str,
        reference_name: str,
        vector_name: str,
    ) -> List[Divergence]:
        """Compare a single client result against a reference result."""
        divergences = []

        # Compare error codes
        ref_error = reference.get("error_code", 0)
        act_error = actual.get("error_code", 0)
        if ref_error != act_error:
            divergences.append(Divergence(
                field="error_code",
                expected=ref_error,
                actual=act_error,
                client=client,
                reference_client=reference_name,
                vector_name=vector_name,
                details=f"Error code mismatch: expected 0x{ref_error:04x}, got 0x{act_error:04x}",
            ))

        # Compare success status
        ref_success = reference.get("success", True)
        act_success = actual.get("success", True)
        if ref_success != act_success:
            divergences.append(Divergence(
                field="success",
                expected=ref_success,
                actual=act_success,
                client=client,
                reference_client=reference_name,
                vector_name=vector_name,
            ))

        # Compare name lookups
        ref_lookups = _lookup_map(reference)
        act_lookups = _lookup_map(actual)
        for key, owner in ref_lookups.items():
            if act_lookups.get(key) != owner:
                divergences.append(Divergence(
                    field="lookups",
                    expected=owner,
                    actual=act_lookups.get(key),
                    client=client,
                    reference_client=reference_name,
                    vector_name=vector_name,
                    details=f"Lookup mismatch for {key}",
                ))

        # Compare state digests
        ref_digest = reference.get("state_digest")
        act_digest = actual.get("state_digest")
        if ref_digest and act_digest and ref_digest != act_digest:
            divergences.append(Divergence(
                field="state_digest",
                expected=ref_digest,
                actual=act_digest,
                client=client,
                reference_client=reference_name,
                vector_name=vector_name,
                details="State digest mismatch after execution",
            ))

        return divergences
