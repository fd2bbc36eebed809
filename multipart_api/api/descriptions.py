"""Endpoint descriptors served by ``GET /`` so clients can discover the API."""

ENDPOINT_DESCRIPTORS: list[dict] = [
    {
        "endPoint": "/start-multipart-upload",
        "method": "POST",
        "description": "Start multipart upload",
        "body": [
            {"fileName": "file name.png", "description": "file name with extension"},
            {"fileType": "image/png", "description": "file type"},
        ],
        "response": [
            {"uploadId": "upload id", "description": "upload id"},
            {"startDateTime": "start date time", "description": "start date time"},
            {"key": "object key", "description": "storage key the upload writes to"},
        ],
    },
    {
        "endPoint": "/get-upload-url",
        "method": "POST",
        "description": "get signed url for uploading part",
        "body": [
            {"fileName": "file name.png", "description": "file name with extension"},
            {"partNumber": 1, "description": "part number"},
            {"uploadId": "upload id", "description": "upload id"},
        ],
        "response": [
            {"url": "signed url", "description": "signed url"},
            {"expiresIn": 3600, "description": "seconds until the url expires"},
        ],
    },
    {
        "endPoint": "/complete-multipart-upload",
        "method": "POST",
        "description": "Complete multipart upload",
        "body": [
            {"fileName": "file name.png", "description": "file name with extension"},
            {"uploadId": "upload id", "description": "upload id"},
            {
                "parts": [{"ETag": "etag", "PartNumber": 1}],
                "description": "parts",
            },
        ],
        "response": [
            {"message": "Upload completed successfully!", "description": "message"},
            {"endDateTime": "end date time", "description": "end date time"},
            {"key": "object key", "description": "storage key of the assembled object"},
        ],
    },
    {
        "endPoint": "/abort-multipart-upload",
        "method": "POST",
        "description": "Abort multipart upload and discard uploaded parts",
        "body": [
            {"uploadId": "upload id", "description": "upload id"},
        ],
        "response": [
            {"message": "Upload aborted", "description": "message"},
            {"abortDateTime": "abort date time", "description": "abort date time"},
            {"key": "object key", "description": "storage key of the discarded upload"},
        ],
    },
]
