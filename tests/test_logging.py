import logging
import uuid

import pytest


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "checkout-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )

    @pytest.mark.parametrize("supplied", ["x" * 65, "<script>", "id with spaces"])
    def test_malformed_request_id_is_replaced(self, client, supplied):
        response = client.get("/health", HTTP_X_REQUEST_ID=supplied)
        request_id = response["X-Request-ID"]
        assert request_id != supplied
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_each_request_gets_its_own_id(self, client):
        first = client.get("/health")["X-Request-ID"]
        second = client.get("/health")["X-Request-ID"]
        assert first != second


class TestSensitiveDataMasking:
    def test_card_number_masked_in_log_output(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "card": "4111 1111 1111 1111"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "4111 1111 1111 1111" not in result["card"]
        assert "***MASKED***" in result["card"]

    def test_signature_masked_in_log_output(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "signature=9f86d081884c7d65"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "9f86d081884c7d65" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_password_masked_in_log_output(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked_in_log_output(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.created", "order_number": "SF-20260101-AB12"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "SF-20260101-AB12"
        assert result["event"] == "order.created"
