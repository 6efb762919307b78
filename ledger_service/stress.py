"""
Concurrent Withdrawal Stress Test

Creates an account and fires many simultaneous withdrawals at it through the
HTTP API. With row-level locking the balance never goes negative and the final
balance equals the opening balance minus every withdrawal that succeeded.

Usage:
    python -m ledger_service.stress --url http://localhost:3000
"""

import argparse
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import httpx

from .logging_config import get_logger, setup_logging


logger = get_logger("ledger.stress")


@dataclass
class StressReport:
    """Outcome of one stress run"""
    account_id: str
    initial_balance: Decimal
    amount: Decimal
    requests: int
    succeeded: int
    insufficient_funds: int
    other_failures: int
    final_balance: Decimal
    elapsed_seconds: float

    @property
    def expected_balance(self) -> Decimal:
        return self.initial_balance - self.amount * self.succeeded

    @property
    def invariant_holds(self) -> bool:
        return self.final_balance >= 0 and self.final_balance == self.expected_balance

    def summary(self) -> str:
        verdict = "PASS" if self.invariant_holds else "FAIL"
        return "\n".join([
            f"Account:            {self.account_id}",
            f"Requests:           {self.requests} x {self.amount}",
            f"Succeeded:          {self.succeeded}",
            f"Insufficient funds: {self.insufficient_funds}",
            f"Other failures:     {self.other_failures}",
            f"Expected balance:   {self.expected_balance}",
            f"Final balance:      {self.final_balance}",
            f"Elapsed:            {self.elapsed_seconds:.2f}s",
            f"Result:             {verdict}",
        ])


class StressClient:
    """Thin REST client for the ledger API"""

    def __init__(self, base_url: str = "http://localhost:3000", timeout: float = 30.0,
                 client: Optional[httpx.Client] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def create_account(self, name: str, initial_balance: Decimal) -> dict:
        response = self._client.post(
            self._url("/accounts"),
            json={"name": name, "initialBalance": str(initial_balance)}
        )
        response.raise_for_status()
        return response.json()["data"]

    def withdraw(self, account_id: str, amount: Decimal) -> httpx.Response:
        return self._client.post(
            self._url(f"/accounts/{account_id}/withdraw"),
            json={"amount": str(amount)}
        )

    def get_account(self, account_id: str) -> dict:
        response = self._client.get(self._url(f"/accounts/{account_id}"))
        response.raise_for_status()
        return response.json()["data"]

    def close(self) -> None:
        self._client.close()


def _classify(response: httpx.Response) -> str:
    if response.is_success:
        return "succeeded"
    try:
        code = response.json().get("error", {}).get("code")
    except (ValueError, AttributeError):
        code = None
    return "insufficient_funds" if code == "INSUFFICIENT_FUNDS" else "other"


def run_stress_test(
    client: StressClient,
    requests: int = 50,
    amount: Decimal = Decimal("10"),
    initial_balance: Decimal = Decimal("100"),
    workers: Optional[int] = None
) -> StressReport:
    """
    Fire `requests` concurrent withdrawals of `amount` at a fresh account.

    Args:
        client: API client
        requests: Number of withdrawals
        amount: Amount of each withdrawal
        initial_balance: Opening balance of the test account
        workers: Concurrent threads (defaults to one per request)
    """
    account = client.create_account(f"Stress Test {int(time.time())}", initial_balance)
    account_id = account["id"]
    logger.info("Stress run started", extra={"extra": {
        "account_id": account_id, "requests": requests, "amount": str(amount)
    }})

    started = time.perf_counter()
    with ThreadPoolExecutor(max_workers=workers or requests) as pool:
        outcomes: List[str] = list(pool.map(
            lambda _: _classify(client.withdraw(account_id, amount)),
            range(requests)
        ))
    elapsed = time.perf_counter() - started

    final = client.get_account(account_id)
    return StressReport(
        account_id=account_id,
        initial_balance=initial_balance,
        amount=amount,
        requests=requests,
        succeeded=outcomes.count("succeeded"),
        insufficient_funds=outcomes.count("insufficient_funds"),
        other_failures=outcomes.count("other"),
        final_balance=Decimal(final["balance"]),
        elapsed_seconds=elapsed,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-stress",
        description="Fire concurrent withdrawals at one account and check the no-overdraft invariant",
    )
    parser.add_argument("--url", default="http://localhost:3000", help="Ledger API base URL")
    parser.add_argument("--requests", type=int, default=50, help="Number of concurrent withdrawals")
    parser.add_argument("--amount", type=Decimal, default=Decimal("10"), help="Amount per withdrawal")
    parser.add_argument("--initial-balance", type=Decimal, default=Decimal("100"),
                        help="Opening balance of the test account")
    parser.add_argument("--workers", type=int, default=None, help="Thread pool size")
    parser.add_argument("--timeout", type=float, default=30.0, help="Per-request timeout in seconds")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("WARNING")

    client = StressClient(args.url, timeout=args.timeout)
    try:
        report = run_stress_test(
            client,
            requests=args.requests,
            amount=args.amount,
            initial_balance=args.initial_balance,
            workers=args.workers,
        )
    except httpx.HTTPError as e:
        print(f"Stress test could not run: {e}", file=sys.stderr)
        return 2
    finally:
        client.close()

    print(report.summary())
    return 0 if report.invariant_holds else 1


if __name__ == "__main__":
    sys.exit(main())
