class AppStatusCode:
    # success
    DATA_RETRIEVED_SUCCESSFULLY = "100"
    OPERATION_SUCCESSFUL = "101"

    # generic failures
    OPERATION_FAILED = "200"
    INVALID_INPUT = "201"
    DUPLICATE_ADD_ERROR = "202"

    # authentication
    AUTHENTICATION_TOKEN_INVALID = "300"
    AUTHENTICATION_TOKEN_EXPIRED = "301"
    AUTHENTICATION_USER_INVALID = "302"
    AUTHENTICATION_USER_INACTIVE = "303"
    AUTHORIZATION_FORBIDDEN = "304"

    # contract lifecycle / escrow
    RESOURCE_NOT_FOUND = "400"
    PRECONDITION_FAILED = "401"
    UPSTREAM_FAILURE = "402"
    WEBHOOK_SIGNATURE_INVALID = "403"
