from typing import List, Union

from requests import Response


class LMSError(Exception):

    def __init__(self, e=None):
        self.error = e

    def __str__(self):
        out = 'There was an error when interfacing with the LMS API'
        if self.error is None:
            return out + '.'
        else:
            return f'{out}:\n{self.error}'


class LMSConnectionException(LMSError):

    def __init__(self, url: str = None):
        self.url = url

    def __str__(self):
        if self.url is None:
            return 'The LMS API endpoint could not be reached.'
        return f'The LMS API endpoint "{self.url}" could not be reached.'


class LMSRequestError(LMSError):
    """
    Raised when an LMS endpoint answers with a non-2xx status. The
    rendered message names the endpoint so that the failing call can
    be identified from the error string alone.
    """
    def __init__(self, endpoint: str, status_code: int, reason: str = '',
                 body: str = ''):
        self.endpoint = endpoint
        self.status_code = status_code
        self.reason = reason
        self.body = body

    @classmethod
    def from_response(cls, endpoint: str, r: Response) -> 'LMSRequestError':
        return cls(endpoint, r.status_code, r.reason or '', r.text)

    def __str__(self):
        return (f'[{self.endpoint}] HTTP {self.status_code} {self.reason}'
                f' - {self.body}')


class MoodleAPIError(LMSError):
    """
    Moodle answers web service errors with HTTP 200 and an error
    payload, so these are raised from the JSON body rather than the
    status code.
    """
    def __init__(self, function: str, errorcode: str, message: str = ''):
        self.function = function
        self.errorcode = errorcode
        self.message = message

    def __str__(self):
        return f'[{self.function}] {self.errorcode} - {self.message}'


class LMSMalformedJsonException(LMSError):

    def __init__(self, json_obj):
        self.obj = json_obj

    def __str__(self):
        return 'Received bad JSON response: ' + str(self.obj)


class UnsupportedLMSError(LMSError):

    def __init__(self, lms_type: Union[str, object]):
        self.lms_type = lms_type

    def __str__(self):
        return f'Unsupported LMS type: {self.lms_type}'


class TokenDecryptionError(LMSError):

    def __init__(self, msg: str = None):
        self.msg = msg

    def __str__(self):
        if self.msg is None:
            return 'The stored access token could not be decrypted.'
        return self.msg


class SectionReconciliationError(LMSError):
    """
    Raised when a reconciliation cannot produce a final section list,
    i.e. the initial fetch or the final re-derivation failed. Failures
    of individual add, rename or show calls never raise this.
    """
    def __init__(self, course_id: Union[str, int], error: Exception,
                 failed_operations: List[str] = None):
        self.course_id = course_id
        self.error = error
        self.failed_operations = failed_operations or []

    def __str__(self):
        return (f'Sections of course {self.course_id} could not be '
                f'reconciled: {self.error}')
