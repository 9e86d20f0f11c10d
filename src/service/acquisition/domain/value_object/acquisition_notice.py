from typing import Optional

import attrs

from src.service.acquisition.domain.enum.notice_kind import NoticeKind


@attrs.define(frozen=True)
class AcquisitionNotice:
    kind: NoticeKind
    message: str
    reference: Optional[str] = None

    @classmethod
    def retry(cls, message: str) -> 'AcquisitionNotice':
        return cls(kind=NoticeKind.RETRY, message=message)

    @classmethod
    def action(cls, message: str) -> 'AcquisitionNotice':
        return cls(kind=NoticeKind.ACTION, message=message)

    @classmethod
    def support(cls, message: str, *, reference: str) -> 'AcquisitionNotice':
        if reference not in message:
            message = f'{message} Reference: {reference}'
        return cls(kind=NoticeKind.SUPPORT, message=message, reference=reference)
