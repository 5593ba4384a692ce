from enum import Enum
from typing import Dict


class RowErrorCode(Enum):
    EMPTY_FIELD = "EMPTY_FIELD"
    INVALID_ENCODING = "INVALID_ENCODING"
    NEGATIVE_DURATION = "NEGATIVE_DURATION"
    INVALID_NUMBER = "INVALID_NUMBER"
    INVALID_DATE = "INVALID_DATE"
    INVALID_DURATION = "INVALID_DURATION"
    INVALID_ACTIVITY_TYPE = "INVALID_ACTIVITY_TYPE"
    UNKNOWN_USER = "UNKNOWN_USER"
    MISSING_CUSTOMER_NAME = "MISSING_CUSTOMER_NAME"
    CUSTOMER_NAME_TOO_LONG = "CUSTOMER_NAME_TOO_LONG"
    EMPTY_CUSTOMER_NAME = "EMPTY_CUSTOMER_NAME"
    EMPTY_PROJECT_NAME = "EMPTY_PROJECT_NAME"
    DUPLICATE_CUSTOMER = "DUPLICATE_CUSTOMER"
    DUPLICATE_PROJECT = "DUPLICATE_PROJECT"
    SAVE_FAILED = "SAVE_FAILED"
    OTHER = "OTHER"


def explain_error(code: RowErrorCode, context: Dict) -> str:
    templates = {
        RowErrorCode.EMPTY_FIELD: "Empty or missing field: {field}",
        RowErrorCode.INVALID_ENCODING: "Invalid encoding, requires UTF-8: {field}",
        RowErrorCode.NEGATIVE_DURATION: "Negative values not supported: {field}",
        RowErrorCode.INVALID_NUMBER: "Invalid numeric value: {field}",
        RowErrorCode.INVALID_DATE: "Invalid date: {value}",
        RowErrorCode.INVALID_DURATION: "Invalid duration: {value}",
        RowErrorCode.INVALID_ACTIVITY_TYPE: 'Invalid activity type "{value}" given, allowed values are: project, global',
        RowErrorCode.UNKNOWN_USER: "Unknown user {user}",
        RowErrorCode.MISSING_CUSTOMER_NAME: "Missing customer name",
        RowErrorCode.CUSTOMER_NAME_TOO_LONG: "Invalid customer name, maximum {max_length} character allowed",
        RowErrorCode.EMPTY_CUSTOMER_NAME: "Cannot use empty customer name",
        RowErrorCode.EMPTY_PROJECT_NAME: "Cannot use empty project name",
        RowErrorCode.DUPLICATE_CUSTOMER: 'Duplicate customer "{name}" within this import',
        RowErrorCode.DUPLICATE_PROJECT: 'Duplicate project "{name}" for customer "{customer}" within this import',
        RowErrorCode.SAVE_FAILED: "Failed to save: {error_detail}",
        RowErrorCode.OTHER: "{detail}",
    }
    template = templates.get(code, templates[RowErrorCode.OTHER])
    return template.format(**{'detail': '', **context})
