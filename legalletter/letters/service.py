import logging
import random
from typing import Optional

from legalletter.audit.service import AuditLog
from legalletter.auth.models import Role
from legalletter.auth.service import IdentityStore
from legalletter.letters.models import Letter, LetterMetadata, LetterStatus
from legalletter.shared.clock import Clock
from legalletter.shared.config import Settings
from legalletter.shared.db import KeyValueStore
from legalletter.shared.errors import (
    AuthorizationError, CreationFailed, LegalLetterError, NoSubscription, NotFound,
    OperationFailed, QuotaExceeded, ValidationError,
)
from legalletter.shared.scheduler import Scheduler
from legalletter.subscriptions.service import SubscriptionStore

logger = logging.getLogger(__name__)

LETTERS_KEY = "letters"

REQUIRED_FIELDS = (
    "sender_name", "sender_address", "recipient_name", "recipient_address", "matter", "resolution",
)

MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

# keyword -> category tag for letter metadata
CATEGORY_KEYWORDS = {
    "contract": "contract-law",
    "breach": "contract-law",
    "payment": "debt-collection",
    "invoice": "debt-collection",
    "debt": "debt-collection",
    "landlord": "landlord-tenant",
    "tenant": "landlord-tenant",
    "lease": "landlord-tenant",
    "deposit": "landlord-tenant",
    "employ": "employment",
    "wage": "employment",
    "salary": "employment",
    "defam": "defamation",
    "copyright": "intellectual-property",
    "trademark": "intellectual-property",
    "refund": "consumer-protection",
    "warranty": "consumer-protection",
}

# pending -> processing -> completed|failed
_NEXT = {
    LetterStatus.PENDING: {LetterStatus.PROCESSING},
    LetterStatus.PROCESSING: {LetterStatus.COMPLETED, LetterStatus.FAILED},
}


class LetterStore:
    def __init__(self, kv: KeyValueStore, identity: IdentityStore, subscriptions: SubscriptionStore,
                 audit: AuditLog, clock: Clock, scheduler: Scheduler, settings: Settings,
                 rng: Optional[random.Random] = None):
        self.kv = kv
        self.identity = identity
        self.subscriptions = subscriptions
        self.audit = audit
        self.clock = clock
        self.scheduler = scheduler
        self.settings = settings
        self._rng = rng or random.Random()

    def _load(self) -> list[Letter]:
        return [Letter.model_validate(r) for r in self.kv.get_json(LETTERS_KEY, [])]

    def _save(self, letters: list[Letter]) -> None:
        self.kv.set_json(LETTERS_KEY, [l.model_dump(mode="json") for l in letters])

    def _update(self, letter_id: str, **changes) -> Optional[Letter]:
        # build the new record first, then swap it in whole
        letters = self._load()
        for i, l in enumerate(letters):
            if l.id == letter_id:
                letters[i] = l.model_copy(update=changes)
                self._save(letters)
                return letters[i]
        return None

    def _transition(self, letter: Letter, status: LetterStatus, **changes) -> Optional[Letter]:
        if status not in _NEXT.get(letter.status, set()):
            logger.warning("ignoring %s -> %s for letter %s", letter.status.value, status.value, letter.id)
            return None
        updated = self._update(letter.id, status=status, version=letter.version + 1, **changes)
        if updated:
            self.audit.record("LETTER_UPDATED", updated.user_id, {
                "letterId": updated.id, "status": status.value, "version": updated.version,
            })
        return updated

    # ---- reads ----
    def get_letter(self, letter_id: str) -> Optional[Letter]:
        return next((l for l in self._load() if l.id == letter_id), None)

    def list_letters_for_user(self, user_id: str) -> list[Letter]:
        """Newest first; soft-deleted letters are hidden."""
        mine = [(i, l) for i, l in enumerate(self._load()) if l.user_id == user_id and not l.is_deleted]
        mine.sort(key=lambda p: (p[1].generated_at, p[0]), reverse=True)
        return [l for _, l in mine]

    def list_all_letters(self, include_deleted: bool = False) -> list[Letter]:
        return [l for l in self._load() if include_deleted or not l.is_deleted]

    # ---- create ----
    def create_letter(self, user_id: str, sender_name: str, sender_address: str, recipient_name: str,
                      recipient_address: str, matter: str, resolution: str) -> Letter:
        """
        Create a pending letter and consume one letter of quota. Generation runs
        later on the scheduler; callers poll list_letters_for_user() to see it finish.
        """
        fields = {
            "sender_name": sender_name, "sender_address": sender_address,
            "recipient_name": recipient_name, "recipient_address": recipient_address,
            "matter": matter, "resolution": resolution,
        }
        consumed = None
        try:
            current = self.identity.require_user()
            if current.id != user_id:
                raise AuthorizationError("Cannot create letters for another user", code="ACCESS_DENIED")
            if current.role != Role.USER:
                raise AuthorizationError("Only users can generate letters", code="INSUFFICIENT_PERMISSIONS")
            for name in REQUIRED_FIELDS:
                if not isinstance(fields[name], str) or not fields[name].strip():
                    raise ValidationError(f"{name} is required", name, code="REQUIRED")

            sub = self.subscriptions.get_active_subscription(user_id)
            if not sub:
                raise NoSubscription("Active subscription required")
            if sub.letters_used >= sub.letters_allowed:
                raise QuotaExceeded("Letter limit exceeded for current subscription")

            letter = Letter(user_id=user_id, generated_at=self.clock.now(),
                            **{k: v.strip() for k, v in fields.items()})
            # the letter is written last; a callback for a letter that never lands is a no-op
            self.scheduler.call_later(0, lambda: self._start_processing(letter.id))
            consumed = self.subscriptions.consume_letter(sub.id)
            letters = self._load()
            letters.append(letter)
            self._save(letters)
        except Exception as e:
            if consumed is not None:
                self.subscriptions.release_letter(consumed.id)
            if isinstance(e, LegalLetterError) and not isinstance(e, OperationFailed):
                raise
            logger.exception("letter creation failed for user %s", user_id)
            raise CreationFailed("Failed to create letter") from e

        self.audit.record("LETTER_CREATED", user_id, {"letterId": letter.id, "matter": letter.matter})
        logger.info("letter queued", extra={"letter_id": letter.id, "user_id": user_id})
        return letter

    # ---- deferred generation ----
    def _start_processing(self, letter_id: str) -> None:
        try:
            letter = self.get_letter(letter_id)
            if not letter or letter.is_deleted:
                logger.info("letter %s gone before processing; skipping", letter_id)
                return
            if self._transition(letter, LetterStatus.PROCESSING):
                self.scheduler.call_later(self.settings.LETTER_PROCESSING_SECONDS,
                                          lambda: self._complete(letter_id))
        except Exception:
            logger.exception("could not start processing letter %s", letter_id)
            self._fail(letter_id)

    def _complete(self, letter_id: str) -> None:
        try:
            letter = self.get_letter(letter_id)
            if not letter or letter.is_deleted:
                logger.info("letter %s gone before completion; skipping", letter_id)
                return
            if self._rng.random() < self.settings.LETTER_FAILURE_RATE:
                logger.warning("simulated generation failure for letter %s", letter_id)
                self._fail(letter_id)
                return
            content = self.generate_content(letter)
            self._transition(
                letter, LetterStatus.COMPLETED,
                content=content,
                completed_at=self.clock.now(),
                metadata=self._metadata(letter, content),
            )
        except Exception:
            logger.exception("generation failed for letter %s", letter_id)
            self._fail(letter_id)

    def _fail(self, letter_id: str) -> None:
        # no caller left to report to: the failure becomes the letter's state
        try:
            letter = self.get_letter(letter_id)
            if letter and letter.status == LetterStatus.PROCESSING:
                self._transition(letter, LetterStatus.FAILED)
        except Exception:
            logger.exception("could not mark letter %s as failed", letter_id)

    def _metadata(self, letter: Letter, content: str) -> LetterMetadata:
        confidence = round(0.85 + self._rng.random() * 0.1, 3)
        words = len(letter.resolution.split())
        text = f"{letter.matter} {letter.resolution}".lower()
        categories = sorted({tag for kw, tag in CATEGORY_KEYWORDS.items() if kw in text}) or ["general"]
        return LetterMetadata(
            processing_time=self.settings.LETTER_PROCESSING_SECONDS,
            word_count=len(content.split()),
            complexity="simple" if words < 40 else "moderate" if words < 120 else "complex",
            legal_categories=categories,
            confidence_score=confidence,
            review_required=confidence < 0.88,
        )

    def generate_content(self, letter: Letter) -> str:
        now = self.clock.now()
        date = f"{MONTHS[now.month - 1]} {now.day}, {now.year}"
        first_name = letter.recipient_name.split()[0] if letter.recipient_name.split() else letter.recipient_name
        return f"""{letter.sender_name}
{letter.sender_address}

{date}

{letter.recipient_name}
{letter.recipient_address}

Re: {letter.matter}

Dear {first_name},

I am writing to formally address the matter concerning {letter.matter.lower()}.

{letter.resolution}

This correspondence serves as official notice and documentation of our position regarding this matter. We expect your prompt attention and response to facilitate a timely resolution.

Please be advised that failure to respond within thirty (30) days of receipt of this letter may result in further legal action being taken to protect our interests and enforce our rights under applicable law.

We remain open to discussing this matter in good faith and look forward to your prompt response.

Sincerely,

{letter.sender_name}

---
This letter was generated using LegalLetter AI
Generated on: {date}
Letter ID: {letter.id[:8]}"""

    # ---- owner actions ----
    def _owned(self, user_id: str, letter_id: str) -> Letter:
        letter = self.get_letter(letter_id)
        if not letter or letter.is_deleted:
            raise NotFound("Letter not found", details={"letter_id": letter_id})
        if letter.user_id != user_id:
            raise AuthorizationError("Access denied to letter", code="ACCESS_DENIED")
        return letter

    def download_letter(self, user_id: str, letter_id: str) -> Letter:
        letter = self._owned(user_id, letter_id)
        if letter.status != LetterStatus.COMPLETED:
            raise ValidationError("Letter is not ready for download", "status", code="NOT_READY")
        letter = self._update(letter_id, download_count=letter.download_count + 1)
        self.audit.record("LETTER_DOWNLOADED", user_id, {"letterId": letter_id})
        return letter

    def delete_letter(self, user_id: str, letter_id: str) -> None:
        self._owned(user_id, letter_id)
        self._update(letter_id, is_deleted=True)
        self.audit.record("LETTER_DELETED", user_id, {"letterId": letter_id})
