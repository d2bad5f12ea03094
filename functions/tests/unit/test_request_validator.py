"""Unit tests for request body validation."""

import pytest

from config.errors import ErrorCode
from models.requests import ProcessBlueprintRequest, ReviewLineItemsRequest
from validators.request_validator import validate_process_request, validate_review_request


class TestValidateProcessRequest:
    
    def test_valid_request(self):
        result = validate_process_request({
            "fileData": "JVBERi0=",
            "fileType": "pdf",
            "projectContext": {"projectId": "p1"},
        })
        
        assert result.is_valid is True
        assert isinstance(result.parsed, ProcessBlueprintRequest)
        assert result.parsed.project_context == {"projectId": "p1"}
    
    def test_null_context_becomes_empty(self):
        result = validate_process_request({"fileData": "JVBERi0=", "fileType": "pdf", "projectContext": None})
        
        assert result.parsed.project_context == {}
    
    @pytest.mark.parametrize("body,missing", [
        ({"fileType": "pdf"}, ["fileData"]),
        ({"fileData": "JVBERi0=", "fileType": ""}, ["fileType"]),
        ({}, ["fileData", "fileType"]),
    ])
    def test_missing_fields(self, body, missing):
        result = validate_process_request(body)
        
        assert result.is_valid is False
        assert result.code == ErrorCode.MISSING_FIELD
        assert result.errors == [f"Missing {name} in request" for name in missing]
    
    def test_wrong_types(self):
        result = validate_process_request({"fileData": "abc", "fileType": "pdf", "projectContext": "oops"})
        
        assert result.is_valid is False
        assert result.code == ErrorCode.VALIDATION_ERROR
        assert any("projectContext" in error for error in result.errors)
    
    def test_non_object_body(self):
        result = validate_process_request(["fileData"])
        
        assert result.is_valid is False


class TestValidateReviewRequest:
    
    def test_valid_request(self):
        result = validate_review_request({
            "lineItems": [{"name": "Slab"}],
            "projectId": "p1",
            "reviewAction": "approve",
            "adjustments": None,
        })
        
        assert result.is_valid is True
        assert isinstance(result.parsed, ReviewLineItemsRequest)
        assert result.parsed.adjustments == []
    
    def test_empty_item_list_is_present(self):
        result = validate_review_request({"lineItems": [], "projectId": "p1", "reviewAction": "add"})
        
        assert result.is_valid is True
    
    def test_missing_fields(self):
        result = validate_review_request({"lineItems": [{}]})
        
        assert result.is_valid is False
        assert result.code == ErrorCode.MISSING_FIELD
        assert result.errors == [
            "Missing projectId in request",
            "Missing reviewAction in request",
        ]
    
    def test_line_items_must_be_objects(self):
        result = validate_review_request({"lineItems": ["x"], "projectId": "p1", "reviewAction": "approve"})
        
        assert result.is_valid is False
        assert result.errors
