import json
import logging
from decimal import Decimal

import pytest

from app.models.reimbursement import ClaimStatus
from app.services.reimbursement_payload import (
    ITEMS_REQUIRED_MESSAGE,
    TOTAL_NOT_POSITIVE_MESSAGE,
    TOTAL_TOO_LARGE_MESSAGE,
    RawPayload,
    SerializedPayload,
    calculate_total_amount,
    determine_reimbursement_status,
    envelope_from_body,
    parse_amount,
    parse_request_data,
    validate_items,
)


class TestRequestNormalizer:
    def test_json_body_is_tagged_raw(self):
        body = {"description": "Client visit", "items": [{"amount": 10}]}

        envelope = envelope_from_body(body)

        assert isinstance(envelope, RawPayload)
        request = parse_request_data(envelope)
        assert request.description == "Client visit"
        assert request.items == [{"amount": 10}]

    def test_serialized_data_field_is_parsed(self):
        payload = {"project_id": 3, "status": "submitted", "items": [{"amount": "12.50"}]}
        body = {"data": json.dumps(payload), "ignored": "x"}

        envelope = envelope_from_body(body)

        assert isinstance(envelope, SerializedPayload)
        request = parse_request_data(envelope)
        assert request.project_id == 3
        assert request.status == "submitted"
        assert request.items == [{"amount": "12.50"}]

    def test_malformed_serialized_data_falls_back_to_raw_body(self, caplog):
        body = {"data": "{not json", "description": "from the form"}

        with caplog.at_level(logging.WARNING):
            request = parse_request_data(envelope_from_body(body))

        assert request.description == "from the form"
        assert request.items is None
        assert "Failed to parse request data" in caplog.text

    def test_serialized_non_object_falls_back_to_raw_body(self, caplog):
        body = {"data": "[1, 2, 3]", "description": "raw"}

        with caplog.at_level(logging.WARNING):
            request = parse_request_data(envelope_from_body(body))

        assert request.description == "raw"
        assert caplog.records

    def test_non_string_data_field_is_not_treated_as_serialized(self):
        envelope = envelope_from_body({"data": {"items": []}, "items": [{"amount": 1}]})

        assert isinstance(envelope, RawPayload)
        assert parse_request_data(envelope).items == [{"amount": 1}]


class TestItemValidation:
    @pytest.mark.parametrize("items", [None, [], "items", {"amount": 1}, 5])
    def test_items_must_be_a_non_empty_list(self, items):
        result = validate_items(items)

        assert result.valid is False
        assert result.error == ITEMS_REQUIRED_MESSAGE

    def test_non_empty_list_is_valid(self):
        assert validate_items([{"amount": 1}]).valid is True

    def test_total_is_sum_of_declared_amounts(self):
        result = calculate_total_amount([{"amount": 100}, {"amount": "200.25"}, {"amount": 0.75}])

        assert result.valid is True
        assert result.total == Decimal("301.00")

    def test_missing_amount_counts_as_zero(self):
        result = calculate_total_amount([{"amount": 50}, {"expense_type": "Food"}, {"amount": None}])

        assert result.valid is True
        assert result.total == Decimal("50")

    @pytest.mark.parametrize("bad", [-1, "-0.01", "abc", "NaN", "Infinity", True])
    def test_negative_or_non_numeric_amount_fails_batch(self, bad):
        result = calculate_total_amount([{"amount": 10}, {"amount": bad}])

        assert result.valid is False
        assert result.error == f"Invalid amount for item: {bad}"

    def test_all_zero_submission_is_rejected(self):
        result = calculate_total_amount([{"amount": 0}, {"amount": "0"}, {}])

        assert result.valid is False
        assert result.error == TOTAL_NOT_POSITIVE_MESSAGE

    def test_parse_amount(self):
        assert parse_amount(" 12.30 ") == Decimal("12.30")
        assert parse_amount(7) == Decimal("7.00")
        assert parse_amount("twelve") is None
        assert parse_amount(None) is None

    def test_parse_amount_rounds_to_cents(self):
        assert parse_amount("10.005") == Decimal("10.01")
        assert parse_amount("0.004") == Decimal("0.00")

    @pytest.mark.parametrize("value", ["1e400", "100000000", "99999999.995", "1e9999999"])
    def test_parse_amount_rejects_values_beyond_column_precision(self, value):
        assert parse_amount(value) is None

    def test_largest_storable_amount_is_accepted(self):
        assert parse_amount("99999999.99") == Decimal("99999999.99")

    def test_sub_cent_amounts_do_not_make_a_positive_total(self):
        result = calculate_total_amount([{"amount": "0.004"}])

        assert result.valid is False
        assert result.error == TOTAL_NOT_POSITIVE_MESSAGE

    def test_oversized_amount_fails_batch(self):
        result = calculate_total_amount([{"amount": 10}, {"amount": "1e400"}])

        assert result.valid is False
        assert result.error == "Invalid amount for item: 1e400"

    def test_total_beyond_column_precision_is_rejected(self):
        result = calculate_total_amount([{"amount": "60000000"}, {"amount": "60000000"}])

        assert result.valid is False
        assert result.error == TOTAL_TOO_LARGE_MESSAGE


class TestStatusResolver:
    def test_submitted_means_pending_approval(self):
        assert determine_reimbursement_status("submitted") is ClaimStatus.PENDING_APPROVAL

    def test_submitted_is_case_sensitive(self):
        with pytest.raises(ValueError):
            determine_reimbursement_status("Submitted")

    @pytest.mark.parametrize("value", [status.value for status in ClaimStatus])
    def test_other_statuses_pass_through(self, value):
        assert determine_reimbursement_status(value).value == value

    @pytest.mark.parametrize("value", [None, ""])
    def test_omitted_status_defaults_to_draft(self, value):
        assert determine_reimbursement_status(value) is ClaimStatus.DRAFT

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValueError):
            determine_reimbursement_status("archived")
