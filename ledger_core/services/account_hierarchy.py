"""
Account hierarchy index.

An in-memory view of the chart of accounts: nodes keyed by account
code with parent links held by key, not by object reference. Posting
validation uses it to resolve account codes; the trial balance uses it
to roll detail balances up into summary accounts.

The index is built fresh for each validation pass or report and is
never cached across requests.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Iterator

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_core.exceptions import HierarchyCycleError
from ledger_core.models.account import Account
from ledger_core.models.enums import AccountType


@dataclass(frozen=True)
class AccountNode:
    account_code: str
    account_name: str
    account_type: AccountType
    parent_code: str | None
    is_detail: bool
    is_active: bool
    sort_order: int | None = None

    @property
    def is_postable(self) -> bool:
        return self.is_detail and self.is_active

    @classmethod
    def from_model(cls, account: Account) -> "AccountNode":
        return cls(
            account_code=account.account_code,
            account_name=account.account_name,
            account_type=account.account_type,
            parent_code=account.parent_account_code,
            is_detail=account.is_detail,
            is_active=account.is_active,
            sort_order=account.sort_order,
        )


class AccountHierarchy:
    """
    Arena of account nodes indexed by code.

    A parent code that is not in the index is treated as absent, so
    the node becomes a root. Cycles are rejected when the chart is
    written (see ChartOfAccountsService); read paths still detect
    them and raise instead of looping.
    """

    def __init__(self, nodes: Iterable[AccountNode]):
        self._nodes: dict[str, AccountNode] = {
            node.account_code: node for node in nodes
        }
        self._children: dict[str | None, list[str]] = defaultdict(list)
        for node in self._nodes.values():
            parent = node.parent_code if node.parent_code in self._nodes else None
            self._children[parent].append(node.account_code)
        for codes in self._children.values():
            codes.sort()

    @classmethod
    def load(cls, db: Session) -> "AccountHierarchy":
        """Read the whole chart of accounts from the database."""
        accounts = db.execute(select(Account)).scalars().all()
        return cls(AccountNode.from_model(a) for a in accounts)

    def __contains__(self, account_code: str) -> bool:
        return account_code in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, account_code: str) -> AccountNode | None:
        return self._nodes.get(account_code)

    def roots(self) -> list[str]:
        return list(self._children.get(None, []))

    def children(self, account_code: str) -> list[str]:
        return list(self._children.get(account_code, []))

    def parent(self, account_code: str) -> str | None:
        node = self._nodes.get(account_code)
        if node is None or node.parent_code not in self._nodes:
            return None
        return node.parent_code

    def ancestors(self, account_code: str) -> list[str]:
        """Parent first, root last."""
        path = []
        seen = {account_code}
        current = self.parent(account_code)
        while current is not None:
            if current in seen:
                raise HierarchyCycleError(account_code, [account_code, *path, current])
            seen.add(current)
            path.append(current)
            current = self.parent(current)
        return path

    def depth(self, account_code: str) -> int:
        return len(self.ancestors(account_code))

    def descendants(self, account_code: str) -> list[str]:
        """All accounts below account_code, depth first."""
        result = []
        stack = list(reversed(self.children(account_code)))
        while stack:
            code = stack.pop()
            result.append(code)
            stack.extend(reversed(self.children(code)))
        return result

    def is_postable(self, account_code: str) -> bool:
        node = self._nodes.get(account_code)
        return node is not None and node.is_postable

    def find_cycle(self) -> list[str] | None:
        """Return one cycle as a list of codes, or None if the chart is a forest."""
        for code in self._nodes:
            try:
                self.ancestors(code)
            except HierarchyCycleError as exc:
                return exc.path
        return None

    def validate(self) -> None:
        cycle = self.find_cycle()
        if cycle:
            raise HierarchyCycleError(cycle[0], cycle)

    def cycle_if_moved(self, account_code: str, new_parent: str | None) -> list[str] | None:
        """
        Path that would form a cycle if account_code were placed under
        new_parent, or None when the move is safe.
        """
        if new_parent is None:
            return None
        if new_parent == account_code:
            return [account_code, account_code]
        path = [new_parent]
        for current in self.ancestors(new_parent):
            path.append(current)
            if current == account_code:
                return [account_code, *path]
        return None

    def walk(self) -> Iterator[tuple[AccountNode, int]]:
        """Pre-order traversal of every tree, yielding (node, depth)."""
        stack = [(code, 0) for code in reversed(self.roots())]
        while stack:
            code, depth = stack.pop()
            yield self._nodes[code], depth
            stack.extend(
                (child, depth + 1) for child in reversed(self.children(code))
            )
