"""登录、成员选择与重置密码的请求/响应结构。"""

from pydantic import AliasChoices, BaseModel, Field

from clubhours_api.schemas.common import BaseSchema


class LoginRequest(BaseModel):
    """登录请求。"""

    email: str = Field(min_length=3, max_length=256, description="登录邮箱。", examples=["familie@example.com"])
    password: str = Field(min_length=1, max_length=256, description="登录密码。")


class SelectMemberRequest(BaseModel):
    """成员选择请求。"""

    member_id: str = Field(
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("member_id", "memberId"),
        description="所选成员的目录 ID。",
    )
    selection_token: str = Field(
        min_length=1,
        max_length=256,
        validation_alias=AliasChoices("selection_token", "selectionToken"),
        description="登录时返回的成员选择令牌。",
    )


class ForgotPasswordRequest(BaseModel):
    email: str = Field(min_length=3, max_length=256, description="需要重置密码的邮箱。")


class ResetPasswordRequest(BaseModel):
    """重置密码请求（字段名沿用前端约定）。"""

    token: str = Field(min_length=1, max_length=256, description="邮件中的重置令牌。")
    userId: str = Field(min_length=1, max_length=64, description="重置令牌绑定的成员 ID。")
    password: str = Field(max_length=256, description="新密码。")


class UserData(BaseSchema):
    """会话成员资料。"""

    id: str = Field(description="成员目录 ID。")
    name: str = Field(description="展示名（名 + 姓）。")
    email: str = Field(description="邮箱。")


class SessionResponse(BaseSchema):
    """单一成员登录成功或成员选择成功。"""

    success: bool = Field(description="固定为 true。")
    token: str = Field(description="会话令牌（Bearer）。")
    user: UserData = Field(description="会话对应的成员。")


class MemberSelectionResponse(BaseSchema):
    """同一邮箱对应多名成员，需要前端让用户选择。"""

    success: bool = Field(description="固定为 false，表示尚未建立会话。")
    multiple: bool = Field(description="固定为 true。")
    users: list[UserData] = Field(description="按姓名排序的候选成员。")
    selection_token: str = Field(description="短期有效的一次性选择令牌。")
    message: str = Field(description="提示语。")


class CurrentUserResponse(BaseSchema):
    success: bool = Field(description="固定为 true。")
    user: UserData = Field(description="当前会话成员。")
