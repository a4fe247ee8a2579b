from pydantic import BaseModel, ConfigDict, EmailStr, Field


class _Payload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)


# --- User ---

class NewUser(_Payload):
    username: str = Field(min_length=5, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)


class LoginUser(_Payload):
    email: EmailStr
    password: str = Field(min_length=1)


class UpdateUser(_Payload):
    username: str | None = Field(None, min_length=5, max_length=100)
    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8, max_length=72)
    bio: str | None = None
    image: str | None = Field(None, max_length=500)


class NewUserRequest(BaseModel):
    user: NewUser


class LoginUserRequest(BaseModel):
    user: LoginUser


class UpdateUserRequest(BaseModel):
    user: UpdateUser


# --- Article ---

class NewArticle(_Payload):
    title: str = Field(min_length=1, max_length=300)
    description: str = Field(min_length=1)
    body: str = Field(min_length=1)
    tag_list: list[str] = Field(default_factory=list, alias="tagList")


class UpdateArticle(_Payload):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: str | None = Field(None, min_length=1)
    body: str | None = Field(None, min_length=1)
    tag_list: list[str] | None = Field(None, alias="tagList")


class NewArticleRequest(BaseModel):
    article: NewArticle


class UpdateArticleRequest(BaseModel):
    article: UpdateArticle


# --- Comment ---

class NewComment(_Payload):
    body: str = Field(min_length=1)


class NewCommentRequest(BaseModel):
    comment: NewComment
