"""成员目录客户端。

成员资料（姓名、邮箱、家庭归属、出生日期）由外部表格服务维护，本服务只读。
接口形态：

- `GET {base}/table/{table}/record?filter=<json>&projection[]=...` → `{"records": [...]}`
- `GET {base}/table/{table}/record/{id}` → 单条记录

每条记录形如 `{"id": "...", "fields": {...}}`。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
import json
import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from clubhours_api.core.config import Settings, get_settings
from clubhours_api.core.errors import DirectoryUnavailable, NoSuchProfile
from clubhours_api.services.credentials import normalize_email
from clubhours_api.utils.collation import display_name_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileRecord:
    """目录中的单个成员资料（只读值对象）。"""

    profile_id: str
    first_name: str
    last_name: str
    email: str
    family_unit_id: str | None = None
    birth_date: date | None = None
    required_hours_per_year: Decimal = Decimal("8")

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def sort_key(self) -> tuple[str, str, str]:
        """展示顺序：按姓名排序，同名按成员 ID。"""
        return (*display_name_key(self.display_name), self.profile_id)

    def required_hours_in(self, year: int) -> Decimal:
        """返回该成员在指定年度的应完成工时。

        只有当年年龄落在 [最小年龄, 最大年龄) 内才需要完成工时；出生日期未知视为需要。
        """
        if self.birth_date is None:
            return self.required_hours_per_year
        settings = get_settings()
        age_in_year = year - self.birth_date.year
        if settings.required_hours_min_age <= age_in_year < settings.required_hours_max_age:
            return self.required_hours_per_year
        return Decimal("0")

    def as_candidate(self) -> dict[str, str]:
        """对外暴露的最小字段集合。"""
        return {"id": self.profile_id, "name": self.display_name, "email": self.email}


@dataclass(frozen=True)
class FamilyUnit:
    """家庭单元；未登记家庭的成员视为单人单元（`family_unit_id` 为空）。"""

    family_unit_id: str | None
    members: tuple[ProfileRecord, ...] = field(default_factory=tuple)

    @property
    def member_ids(self) -> frozenset[str]:
        return frozenset(member.profile_id for member in self.members)


def sort_profiles(profiles: list[ProfileRecord]) -> list[ProfileRecord]:
    return sorted(profiles, key=lambda item: item.sort_key())


def _parse_birth_date(raw: object) -> date | None:
    """解析出生日期，兼容 RFC3339 时间戳与 YYYY-MM-DD；无法解析返回 None。"""
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def _text_field(fields: dict[str, Any], name: str) -> str:
    value = fields.get(name)
    return value.strip() if isinstance(value, str) else ""


def _family_field(fields: dict[str, Any], name: str) -> str | None:
    value = fields.get(name)
    # 家庭标识可能以字符串或整数形式存储。
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class DirectoryClient:
    """成员目录只读客户端。

    读请求都是幂等的，遇到 `DirectoryUnavailable` 自动重试一次。
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str,
        members_table_id: str,
        timeout: float,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.members_table_id = members_table_id
        self.timeout = timeout
        self.settings = settings or get_settings()
        self.transport = transport

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> "DirectoryClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.directory_base_url,
            token=settings.directory_token,
            members_table_id=settings.directory_members_table_id,
            timeout=settings.directory_timeout_seconds,
            settings=settings,
            transport=transport,
        )

    @property
    def _projection(self) -> list[str]:
        s = self.settings
        return [
            s.directory_field_first_name,
            s.directory_field_last_name,
            s.directory_field_email,
            s.directory_field_family,
            s.directory_field_birth_date,
        ]

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_fixed(0.2),
        retry=retry_if_exception_type(DirectoryUnavailable),
        reraise=True,
    )
    def _get(self, path: str, params: list[tuple[str, str]]) -> Any:
        url = f"{self.base_url}/table/{self.members_table_id}{path}"
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                resp = client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as exc:
            logger.warning("directory request timed out path=%s", path)
            raise DirectoryUnavailable(reason="timeout") from exc
        except httpx.RequestError as exc:
            logger.warning("directory request failed path=%s error=%s", path, exc.__class__.__name__)
            raise DirectoryUnavailable(reason="network_error") from exc

        if resp.status_code == httpx.codes.NOT_FOUND:
            raise NoSuchProfile(reason="not_found_in_directory")
        if resp.status_code >= 400:
            logger.warning("directory returned status=%s path=%s", resp.status_code, path)
            raise DirectoryUnavailable(reason="upstream_status", upstream_status=resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise DirectoryUnavailable(reason="malformed_body") from exc

    def _to_profile(self, record: object) -> ProfileRecord:
        if not isinstance(record, dict):
            raise DirectoryUnavailable(reason="malformed_body")
        record_id = record.get("id")
        fields = record.get("fields")
        if not isinstance(record_id, str) or not record_id or not isinstance(fields, dict):
            raise DirectoryUnavailable(reason="malformed_body")

        s = self.settings
        return ProfileRecord(
            profile_id=record_id,
            first_name=_text_field(fields, s.directory_field_first_name),
            last_name=_text_field(fields, s.directory_field_last_name),
            email=_text_field(fields, s.directory_field_email),
            family_unit_id=_family_field(fields, s.directory_field_family),
            birth_date=_parse_birth_date(fields.get(s.directory_field_birth_date)),
            required_hours_per_year=s.required_hours_per_year,
        )

    def _query(self, field_name: str, value: str) -> list[ProfileRecord]:
        filter_json = json.dumps(
            {
                "conjunction": "and",
                "filterSet": [{"fieldId": field_name, "operator": "is", "value": value}],
            }
        )
        params = [("filter", filter_json)] + [("projection[]", name) for name in self._projection]
        body = self._get("/record", params)
        records = body.get("records") if isinstance(body, dict) else None
        if not isinstance(records, list):
            raise DirectoryUnavailable(reason="malformed_body")
        return [self._to_profile(record) for record in records]

    def resolve(self, email: str) -> list[ProfileRecord]:
        """按邮箱（大小写不敏感）解析全部候选成员，结果按展示顺序排列。"""
        normalized = normalize_email(email)
        profiles = self._query(self.settings.directory_field_email, normalized)
        # 服务端筛选可能区分大小写，本地再做一次精确匹配。
        matched = [profile for profile in profiles if normalize_email(profile.email) == normalized]
        if not matched:
            raise NoSuchProfile(reason="email_not_in_directory")
        logger.info("directory resolved candidates=%s", len(matched))
        return sort_profiles(matched)

    def get_profile(self, profile_id: str) -> ProfileRecord:
        """按成员 ID 读取资料。"""
        params = [("projection[]", name) for name in self._projection]
        return self._to_profile(self._get(f"/record/{profile_id}", params))

    def family_of(self, profile_id: str) -> FamilyUnit:
        """返回成员所在的家庭单元，请求成员本人一定在单元内。"""
        profile = self.get_profile(profile_id)
        if profile.family_unit_id is None:
            return FamilyUnit(family_unit_id=None, members=(profile,))

        relatives = self._query(self.settings.directory_field_family, profile.family_unit_id)
        members: dict[str, ProfileRecord] = {profile.profile_id: profile}
        for relative in relatives:
            if relative.family_unit_id == profile.family_unit_id:
                members.setdefault(relative.profile_id, relative)
        return FamilyUnit(
            family_unit_id=profile.family_unit_id,
            members=tuple(sort_profiles(list(members.values()))),
        )


def get_directory() -> DirectoryClient:
    """依赖注入入口：按当前配置构造目录客户端。"""
    return DirectoryClient.from_settings()
