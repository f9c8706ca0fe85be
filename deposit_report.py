#!/usr/bin/env python3
"""
DogeMiner Deposit Report
Lists a user's deposit requests and ledger transactions straight from the store.

Usage:
    python deposit_report.py <user_id> [--status=pending] [--show-all]

Environment:
    SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY

Example:
    python deposit_report.py 3f1c2a90-... --status=pending
"""

import argparse
import os
import sys
from datetime import datetime
from typing import Dict, List, Optional

import requests
from tabulate import tabulate


class DepositReporter:
    """Reads deposits and transactions for one user through PostgREST"""

    def __init__(self, url: str, service_role_key: str):
        self.url = url.rstrip("/")
        self.headers = {
            "apikey": service_role_key,
            "Authorization": f"Bearer {service_role_key}",
        }

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict]:
        """GET rows from a table; exits on HTTP errors"""
        try:
            response = requests.get(
                f"{self.url}/rest/v1/{table}",
                params={"select": "*", **params},
                headers=self.headers,
                timeout=30,
            )
        except requests.RequestException as e:
            print(f"Error: could not reach store: {e}")
            sys.exit(1)

        if response.status_code != 200:
            print(f"Error: store returned status {response.status_code} for {table}")
            sys.exit(1)
        return response.json()

    def get_deposits(self, user_id: str, status: Optional[str] = None) -> List[Dict]:
        params = {"user_id": f"eq.{user_id}", "order": "created_at.desc"}
        if status:
            params["status"] = f"eq.{status}"
        return self._select("deposits", params)

    def get_transactions(self, user_id: str) -> List[Dict]:
        return self._select(
            "transactions",
            {"user_id": f"eq.{user_id}", "type": "eq.deposit", "order": "created_at.desc"},
        )


def format_timestamp(value: Optional[str]) -> str:
    """Format an ISO timestamp for display"""
    if not value:
        return "-"
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def print_summary(user_id: str, deposits: List[Dict], transactions: List[Dict]):
    """Print summary statistics"""
    by_status: Dict[str, int] = {}
    for deposit in deposits:
        by_status[deposit["status"]] = by_status.get(deposit["status"], 0) + 1

    credited = sum(
        float(tx.get("amount") or 0) for tx in transactions if tx.get("status") == "completed"
    )

    print("=" * 80)
    print("DEPOSIT SUMMARY")
    print("=" * 80)
    print(f"User: {user_id}")
    print()
    for status in ("pending", "completed", "expired"):
        print(f"  {status.capitalize():<10} {by_status.get(status, 0):>5} requests")
    print()
    print(f"  Credited:  {credited:,.4f} DOGE ({len(transactions)} transactions)")
    print()


def print_deposits(deposits: List[Dict], max_show: int):
    if not deposits:
        return

    print(f"\nDEPOSIT REQUESTS ({len(deposits)} total, showing {min(len(deposits), max_show)}):")
    print("-" * 80)
    table_data = [
        [
            format_timestamp(d.get("created_at")),
            d.get("verification_code"),
            f"{float(d.get('amount') or 0):,.4f}",
            d.get("status"),
            format_timestamp(d.get("expires_at")),
            format_timestamp(d.get("verified_at")),
        ]
        for d in deposits[:max_show]
    ]
    print(tabulate(
        table_data,
        headers=["Created", "Code", "Amount", "Status", "Expires", "Verified"],
        tablefmt="grid",
    ))


def print_transactions(transactions: List[Dict], max_show: int):
    if not transactions:
        return

    print(f"\nTRANSACTIONS ({len(transactions)} total, showing {min(len(transactions), max_show)}):")
    print("-" * 80)
    table_data = [
        [
            format_timestamp(tx.get("created_at")),
            (tx.get("tx_hash") or "")[:16] + "...",
            f"{float(tx.get('amount') or 0):,.4f}",
            tx.get("status"),
            tx.get("notes") or "",
        ]
        for tx in transactions[:max_show]
    ]
    print(tabulate(
        table_data,
        headers=["Time", "Hash", "Amount", "Status", "Notes"],
        tablefmt="grid",
    ))


def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="List DogeMiner deposits and transactions for a user"
    )
    parser.add_argument("user_id", help="User id (uuid)")
    parser.add_argument(
        "--status",
        choices=["pending", "completed", "expired"],
        help="Only show deposit requests with this status",
    )
    parser.add_argument(
        "--show-all",
        action="store_true",
        help="Show all rows (default: 10 most recent)",
    )
    args = parser.parse_args()

    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    if not url or not key:
        print("Error: SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        sys.exit(1)

    reporter = DepositReporter(url, key)
    deposits = reporter.get_deposits(args.user_id, args.status)
    transactions = reporter.get_transactions(args.user_id)

    print_summary(args.user_id, deposits, transactions)

    max_show = 999999 if args.show_all else 10
    print_deposits(deposits, max_show)
    print_transactions(transactions, max_show)

    print()
    print("=" * 80)


if __name__ == "__main__":
    main()
