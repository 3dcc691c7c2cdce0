"""
FormBridge Backend — Submission Service Unit Tests
====================================================

What:  Tests for intake validation, document enrichment and the paginated reader.
How:   Runs SubmissionService against the in-memory FakeFirestore from conftest.

What we test:
    ✅ Fail-fast validation order (missing field before email shape)
    ✅ Stored document = payload + submittedAt/ipAddress/userAgent
    ✅ No deduplication of identical submissions
    ✅ Pagination law: totalPages = ceil(N / L), pages past the end are empty
    ✅ Store failures surface their message verbatim as StoreError
"""

import math

import pytest
from google.cloud.firestore import SERVER_TIMESTAMP

from formbridge.exceptions import (
    InvalidFormatError,
    MissingFieldError,
    StoreError,
    ValidationError,
)
from formbridge.schemas.submission import PaginationParams, parse_int_param
from formbridge.services.submission_service import (
    SubmissionService,
    build_document,
    validate_submission,
)


class TestValidateSubmission:
    """Intake rules, applied in order."""

    def test_valid_payload_passes(self, valid_payload):
        validate_submission(valid_payload)

    @pytest.mark.parametrize("field", ["username", "email", "password"])
    def test_missing_field(self, valid_payload, field):
        del valid_payload[field]
        with pytest.raises(MissingFieldError) as exc_info:
            validate_submission(valid_payload)
        assert exc_info.value.kind == "MissingField"
        assert exc_info.value.message == "Missing required fields: username, email, password"

    @pytest.mark.parametrize("empty", ["", None, 0, False])
    def test_falsy_field_counts_as_missing(self, valid_payload, empty):
        valid_payload["password"] = empty
        with pytest.raises(MissingFieldError):
            validate_submission(valid_payload)

    @pytest.mark.parametrize("email", ["nope", "a@b", "@b.com", "a b@c.com", "a@b@c.com", "a@b.com\n"])
    def test_bad_email_shape(self, valid_payload, email):
        valid_payload["email"] = email
        with pytest.raises(InvalidFormatError) as exc_info:
            validate_submission(valid_payload)
        assert exc_info.value.kind == "InvalidFormat"
        assert exc_info.value.message == "Invalid email format"

    @pytest.mark.parametrize("email", ["a@b.com", "first.last@sub.example.co.uk", "x+tag@d.io"])
    def test_good_email_shape(self, valid_payload, email):
        valid_payload["email"] = email
        validate_submission(valid_payload)

    def test_missing_field_reported_before_bad_email(self):
        with pytest.raises(MissingFieldError):
            validate_submission({"username": "bob", "email": "nope"})


class TestBuildDocument:

    def test_adds_server_fields_and_keeps_extras(self, valid_payload):
        valid_payload["newsletter"] = True
        doc = build_document(valid_payload, "10.0.0.7", "Mozilla/5.0")

        assert doc["newsletter"] is True
        assert doc["username"] == "alice"
        assert doc["submittedAt"] is SERVER_TIMESTAMP
        assert doc["ipAddress"] == "10.0.0.7"
        assert doc["userAgent"] == "Mozilla/5.0"

    def test_server_fields_override_caller_values(self, valid_payload):
        valid_payload["ipAddress"] = "1.2.3.4"
        doc = build_document(valid_payload, "10.0.0.7", None)

        assert doc["ipAddress"] == "10.0.0.7"
        assert doc["userAgent"] == ""

    def test_payload_is_not_mutated(self, valid_payload):
        build_document(valid_payload, "10.0.0.7", "ua")
        assert "submittedAt" not in valid_payload


class TestSubmit:

    def setup_method(self):
        self.service = SubmissionService()

    @pytest.mark.asyncio
    async def test_submit_writes_one_document(self, fake_db, valid_payload):
        result = await self.service.submit(fake_db, valid_payload, "127.0.0.1", "pytest")

        assert result.success is True
        assert result.id
        assert result.message == "Form submitted successfully"

        stored = fake_db.collection("form_submissions").documents[result.id]
        assert stored["email"] == "alice@example.com"
        assert stored["ipAddress"] == "127.0.0.1"
        assert stored["userAgent"] == "pytest"
        assert stored["submittedAt"] is not None

    @pytest.mark.asyncio
    async def test_invalid_payload_writes_nothing(self, fake_db):
        with pytest.raises(ValidationError):
            await self.service.submit(fake_db, {"username": "bob"}, "127.0.0.1", "pytest")

        assert fake_db.collection("form_submissions").documents == {}

    @pytest.mark.asyncio
    async def test_identical_submissions_are_not_deduplicated(self, fake_db, valid_payload):
        first = await self.service.submit(fake_db, valid_payload, "127.0.0.1", "pytest")
        second = await self.service.submit(fake_db, valid_payload, "127.0.0.1", "pytest")

        assert first.id != second.id
        assert len(fake_db.collection("form_submissions").documents) == 2

    @pytest.mark.asyncio
    async def test_store_failure_message_is_verbatim(self, fake_db, valid_payload):
        fake_db.fail_with = RuntimeError("429 Quota exceeded")

        with pytest.raises(StoreError) as exc_info:
            await self.service.submit(fake_db, valid_payload, "127.0.0.1", "pytest")

        assert exc_info.value.message == "429 Quota exceeded"

    @pytest.mark.asyncio
    async def test_custom_collection_name(self, fake_db, valid_payload):
        service = SubmissionService("leads")
        result = await service.submit(fake_db, valid_payload, "127.0.0.1", "pytest")

        assert result.id in fake_db.collection("leads").documents


class TestListSubmissions:

    def setup_method(self):
        self.service = SubmissionService()

    async def _seed(self, fake_db, n):
        ids = []
        for i in range(n):
            result = await self.service.submit(
                fake_db,
                {"username": f"user{i}", "email": f"user{i}@example.com", "password": "pw"},
                "127.0.0.1",
                "pytest",
            )
            ids.append(result.id)
        return ids

    @pytest.mark.asyncio
    async def test_empty_collection(self, fake_db):
        result = await self.service.list_submissions(fake_db)

        assert result.submissions == []
        assert result.pagination.total_count == 0
        assert result.pagination.total_pages == 0
        assert result.pagination.current_page == 1
        assert result.pagination.limit == 10

    @pytest.mark.asyncio
    async def test_newest_first_with_ids(self, fake_db):
        ids = await self._seed(fake_db, 3)

        result = await self.service.list_submissions(fake_db, page=1, limit=10)

        assert [s["id"] for s in result.submissions] == list(reversed(ids))
        first = result.submissions[0]
        assert first["username"] == "user2"
        assert {"submittedAt", "ipAddress", "userAgent"} <= first.keys()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("n, limit", [(25, 10), (20, 10), (1, 10), (7, 3), (5, 1)])
    async def test_pagination_law(self, fake_db, n, limit):
        await self._seed(fake_db, n)
        total_pages = math.ceil(n / limit)

        last = await self.service.list_submissions(fake_db, page=total_pages, limit=limit)
        assert last.pagination.total_pages == total_pages
        assert 1 <= len(last.submissions) <= limit

        beyond = await self.service.list_submissions(fake_db, page=total_pages + 1, limit=limit)
        assert beyond.submissions == []
        assert beyond.pagination.total_count == n

    @pytest.mark.asyncio
    async def test_pages_do_not_overlap(self, fake_db):
        ids = await self._seed(fake_db, 7)

        seen = []
        for page in (1, 2, 3):
            result = await self.service.list_submissions(fake_db, page=page, limit=3)
            seen.extend(s["id"] for s in result.submissions)

        assert seen == list(reversed(ids))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("page, limit", [(-1, 10), (1, -5), (0, 10), (1, 0)])
    async def test_non_positive_values_rejected(self, fake_db, page, limit):
        with pytest.raises(ValidationError):
            await self.service.list_submissions(fake_db, page=page, limit=limit)

    @pytest.mark.asyncio
    async def test_store_failure_message_is_verbatim(self, fake_db):
        fake_db.fail_with = RuntimeError("503 Service Unavailable")

        with pytest.raises(StoreError) as exc_info:
            await self.service.list_submissions(fake_db)

        assert exc_info.value.message == "503 Service Unavailable"


class TestPaginationParams:
    """Lenient parsing of ?page= and ?limit=."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            (None, 7),
            ("", 7),
            ("abc", 7),
            ("0", 7),
            ("3", 3),
            (" 4", 4),
            ("12abc", 12),
            ("2.9", 2),
            ("+5", 5),
            ("-2", -2),
            (6, 6),
        ],
    )
    def test_parse_int_param(self, raw, expected):
        assert parse_int_param(raw, 7) == expected

    def test_defaults(self):
        params = PaginationParams()
        assert (params.page, params.limit) == (1, 10)

    def test_numeric_strings_parsed(self):
        params = PaginationParams(page="3", limit="20")
        assert (params.page, params.limit) == (3, 20)

    def test_garbage_falls_back(self):
        params = PaginationParams(page="x", limit="y")
        assert (params.page, params.limit) == (1, 10)
