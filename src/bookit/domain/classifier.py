"""Proposals for draft entries, and account detection.

Contacts are proposed from alias patterns, savings plans from plan names and
contract numbers in the subject, securities from names and identifiers
anywhere in the entry text. Entries that repeat an already booked bank
posting are reported as duplicates.
"""

import re
from typing import Iterable, Optional

from bookit.database.base import Database
from bookit.domain.directory import (
    AccountService,
    ContactService,
    SavingsPlanService,
    SecurityService,
)
from bookit.domain.draft import DraftService
from bookit.domain.entities import (
    Contact,
    Draft,
    DraftEntry,
    EntryProposal,
    PostingKind,
    SavingsPlan,
    Security,
)
from bookit.logging_config import get_logger

logger = get_logger("classifier")

_UMLAUTS = {"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"}
_WHITESPACE = re.compile(r"\s+")
_CONTRACT_SEPARATORS = re.compile(r"[\s-]+")
_NOT_ALPHANUMERIC = re.compile(r"[^A-Z0-9]+")


def normalize(text: Optional[str]) -> str:
    """Lowercase, transliterate umlauts and trim trailing whitespace."""
    result = (text or "").lower()
    for umlaut, replacement in _UMLAUTS.items():
        result = result.replace(umlaut, replacement)
    return result.rstrip()


def compile_pattern(pattern: str) -> re.Pattern:
    """Compile an alias pattern.

    ``*`` matches any run of characters and ``?`` a single one; such patterns
    must match the whole text. A pattern without wildcards matches anywhere.
    """
    normalized = normalize(pattern).strip()
    escaped = re.escape(normalized).replace(r"\*", ".*").replace(r"\?", ".")
    if "*" in normalized or "?" in normalized:
        return re.compile(f"^{escaped}$")
    return re.compile(escaped)


def _pattern_length(pattern: str) -> int:
    return len(pattern.replace("*", "").replace("?", "").strip())


def _best_match(contacts: Iterable[Contact], text: str) -> Optional[int]:
    """Find the contact whose name or alias matches ``text``.

    An exact name match wins. Otherwise alias patterns are tried, first on the
    text as is, then with whitespace removed. Among several matching aliases
    the longest pattern wins, then the most recently created contact.
    """
    if not text:
        return None
    contacts = list(contacts)

    for contact in contacts:
        if normalize(contact.name) == text:
            return contact.id

    for candidate in (text, _WHITESPACE.sub("", text)):
        best = None
        for contact in contacts:
            for alias in contact.aliases:
                if not alias.pattern.strip():
                    continue
                if compile_pattern(alias.pattern).search(candidate):
                    rank = (_pattern_length(alias.pattern), contact.created_at, contact.id)
                    if best is None or rank > best[0]:
                        best = (rank, contact.id)
        if best is not None:
            return best[1]
    return None


def security_key(text: Optional[str]) -> str:
    """Uppercase letters and digits only, umlauts transliterated."""
    return _NOT_ALPHANUMERIC.sub("", normalize(text).upper())


def matching_savings_plans(plans: Iterable[SavingsPlan], subject: Optional[str]) -> list[int]:
    """IDs of active plans whose name or contract number appears in ``subject``.

    Names are compared without whitespace, contract numbers without
    whitespace and dashes.
    """
    text = _WHITESPACE.sub("", normalize(subject))
    if not text:
        return []
    contract_text = _CONTRACT_SEPARATORS.sub("", text)
    matches = []
    for plan in plans:
        if not plan.is_active:
            continue
        name = _WHITESPACE.sub("", normalize(plan.name))
        contract = _CONTRACT_SEPARATORS.sub("", normalize(plan.contract_number))
        if (name and name in text) or (contract and contract in contract_text):
            matches.append(plan.id)
    return matches


def matching_securities(securities: Iterable[Security], entry: DraftEntry) -> list[int]:
    """IDs of active securities named or identified in the entry, ordered by name."""
    haystack = security_key(
        " ".join(t for t in (entry.subject, entry.booking_description, entry.recipient_name) if t)
    )
    if not haystack:
        return []
    matches = []
    for security in sorted(securities, key=lambda s: s.name):
        if not security.is_active:
            continue
        keys = (security_key(security.identifier), security_key(security.name))
        if any(key and key in haystack for key in keys):
            matches.append(security.id)
    return matches


class EntryClassifier:
    """Proposes assignments for draft entries and detects the account of a draft.

    Proposals never change an entry; ``apply_proposals`` does that through
    the draft service.
    """

    def __init__(self, db: Database):
        self.db = db
        self.contacts = ContactService(db)
        self.accounts = AccountService(db)
        self.savings_plans = SavingsPlanService(db)
        self.securities = SecurityService(db)
        self.drafts = DraftService(db)

    def propose_contact(
        self, owner_id: int, entry: DraftEntry, contacts: Optional[list[Contact]] = None
    ) -> Optional[int]:
        """Return the ID of the contact the entry most likely belongs to, or None.

        The recipient name is searched first, then the subject.
        """
        if contacts is None:
            contacts = self.contacts.list_contacts(owner_id)
        for text in (entry.recipient_name, entry.subject):
            contact_id = _best_match(contacts, normalize(text))
            if contact_id is not None:
                return contact_id
        return None

    def classify_draft(self, draft_id: int, owner_id: int) -> dict[int, int]:
        """Map entry IDs of unbooked entries to proposed contact IDs."""
        entries = self.drafts.list_entries(draft_id, owner_id)
        contacts = self.contacts.list_contacts(owner_id)
        proposals = {}
        for entry in entries:
            if entry.is_booked:
                continue
            contact_id = self.propose_contact(owner_id, entry, contacts)
            if contact_id is not None:
                proposals[entry.id] = contact_id
        return proposals

    def propose_savings_plan(
        self, owner_id: int, entry: DraftEntry, plans: Optional[list[SavingsPlan]] = None
    ) -> Optional[int]:
        """Return the first active savings plan named in the entry subject, or None."""
        if plans is None:
            plans = self.savings_plans.list_savings_plans(owner_id)
        matches = matching_savings_plans(plans, entry.subject)
        return matches[0] if matches else None

    def propose_security(
        self, owner_id: int, entry: DraftEntry, securities: Optional[list[Security]] = None
    ) -> Optional[int]:
        """Return the first active security mentioned in the entry, or None.

        Entries that already carry a security get no proposal.
        """
        if entry.security_id is not None:
            return None
        if securities is None:
            securities = self.securities.list_securities(owner_id)
        matches = matching_securities(securities, entry)
        return matches[0] if matches else None

    def find_duplicate(self, draft: Draft, entry: DraftEntry) -> Optional[int]:
        """Return the ID of a booked bank posting that repeats ``entry``, or None.

        A repeat is a posting on the draft's account with the same booking date,
        the same amount and the same subject ignoring case.
        """
        if draft.detected_account_id is None:
            return None
        subject = (entry.subject or "").casefold()
        for posting in self.db.list_postings(
            kind=PostingKind.BANK,
            dimension_id=draft.detected_account_id,
            booking_date_from=entry.booking_date,
            booking_date_to=entry.booking_date,
        ):
            if posting.source_id == entry.id:
                continue
            if posting.amount == entry.amount and (posting.subject or "").casefold() == subject:
                return posting.id
        return None

    def propose(self, draft_id: int, owner_id: int) -> list[EntryProposal]:
        """Collect every proposal for the unbooked entries of a draft.

        Nothing is written. When several savings plans or securities match,
        the first is proposed and the dimension is listed in ``ambiguous``.
        """
        draft = self.drafts.require_draft(draft_id, owner_id)
        contacts = self.contacts.list_contacts(owner_id)
        plans = self.savings_plans.list_savings_plans(owner_id)
        securities = self.securities.list_securities(owner_id)

        proposals = []
        for entry in self.drafts.list_entries(draft_id, owner_id):
            if entry.is_booked:
                continue
            plan_ids = matching_savings_plans(plans, entry.subject)
            security_ids = (
                matching_securities(securities, entry) if entry.security_id is None else []
            )
            ambiguous = []
            if len(plan_ids) > 1:
                ambiguous.append("savings_plan")
            if len(security_ids) > 1:
                ambiguous.append("security")
            proposals.append(
                EntryProposal(
                    entry_id=entry.id,
                    contact_id=self.propose_contact(owner_id, entry, contacts),
                    savings_plan_id=plan_ids[0] if plan_ids else None,
                    security_id=security_ids[0] if security_ids else None,
                    duplicate_posting_id=self.find_duplicate(draft, entry),
                    ambiguous=tuple(ambiguous),
                )
            )
        logger.debug(
            "Entry proposals collected",
            extra={"draft_id": draft_id, "owner_id": owner_id, "entries": len(proposals)},
        )
        return proposals

    def apply_proposals(self, draft_id: int, owner_id: int) -> dict[int, int]:
        """Assign proposed contacts to entries that have none yet.

        Returns:
            The applied entry -> contact mapping
        """
        applied = {}
        entries = {e.id: e for e in self.drafts.list_entries(draft_id, owner_id)}
        with self.db.transaction():
            for entry_id, contact_id in self.classify_draft(draft_id, owner_id).items():
                if entries[entry_id].contact_id is not None:
                    continue
                self.drafts.assign_contact(draft_id, entry_id, owner_id, contact_id)
                applied[entry_id] = contact_id
        logger.info(
            "Contacts proposed",
            extra={"draft_id": draft_id, "owner_id": owner_id, "applied": len(applied)},
        )
        return applied

    def detect_account(self, draft_id: int, owner_id: int) -> Optional[int]:
        """Set the draft account from the statement header if it is still unset.

        The account whose IBAN equals the header's account name is used; without
        an account name the owner's only account is used.

        Returns:
            The draft's account ID after detection, or None
        """
        draft = self.drafts.require_draft(draft_id, owner_id)
        if draft.detected_account_id is not None:
            return draft.detected_account_id

        account_id = None
        if draft.account_name and draft.account_name.strip():
            account = self.accounts.find_by_iban(owner_id, draft.account_name)
            account_id = account.id if account else None
        else:
            accounts = self.accounts.list_accounts(owner_id)
            if len(accounts) == 1:
                account_id = accounts[0].id

        if account_id is not None:
            self.drafts.set_account(draft_id, owner_id, account_id)
        return account_id
