"""请求表单资源。"""

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from api_envelope.models.user import User
from api_envelope.resources.form import FormResource
from api_envelope.schemas.article import ArticleInput
from api_envelope.schemas.auth import LoginInput, RegisterInput
from api_envelope.services.local_auth import hash_password, needs_rehash, verify_password

INVALID_CREDENTIALS_MESSAGE = "Incorrect username or password."


class ArticleForm(FormResource):
    schema = ArticleInput


class LoginForm(FormResource):
    schema = LoginInput

    def authenticate(self, db: Session) -> User | None:
        """校验通过后核对口令，失败时记录字段错误。"""
        if not self.validate():
            return None
        user = db.scalar(select(User).where(User.username == self.username))
        if user is None or not verify_password(self.password, user.password_hash):
            self.add_error("password", INVALID_CREDENTIALS_MESSAGE)
            return None
        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(self.password)
            db.commit()
        return user


class RegisterForm(FormResource):
    schema = RegisterInput

    def ensure_unique(self, db: Session) -> bool:
        """登录名与邮箱唯一性校验。"""
        existing = db.scalars(
            select(User).where(or_(User.username == self.username, User.email == self.email))
        ).all()
        for user in existing:
            if user.username == self.username:
                self.add_error("username", f'Username "{self.username}" has already been taken.')
            if user.email == self.email:
                self.add_error("email", f'Email "{self.email}" has already been taken.')
        return not self.has_errors()
