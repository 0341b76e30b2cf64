from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from api_envelope.models.article import Article
from api_envelope.models.forms import ArticleForm, LoginForm, RegisterForm
from api_envelope.models.user import User
from api_envelope.resources.base import Arrayable, Resource, extract_fields_for, extract_root_fields
from api_envelope.services.local_auth import hash_password


class Author(Arrayable):
    def __init__(self, name: str, email: str):
        self.name = name
        self.email = email


class Post(Resource):
    def __init__(self, title: str, author: Author, tags: list[Author] | None = None):
        self.title = title
        self.author = author
        self.tags = tags or []
        self._secret = "hidden"

    def fields(self):
        return {"title": "title", "shout": lambda model, field: model.title.upper()}

    def extra_fields(self):
        return ["author", "tags"]


def test_extract_helpers():
    assert extract_root_fields(["id", "author.name", "author.email", ""]) == ["id", "author"]
    assert extract_root_fields(["id", "*"]) == []
    assert extract_fields_for(["id", "author.name", "author.email"], "author") == ["name", "email"]


def test_default_fields_skip_private_attributes():
    author = Author("Ann", "ann@example.com")
    author._cache = object()

    assert author.to_array() == {"name": "Ann", "email": "ann@example.com"}


def test_to_array_filters_fields_and_expands_nested():
    post = Post("hello", Author("Ann", "ann@example.com"), tags=[Author("Bob", "bob@example.com")])

    assert post.to_array() == {"title": "hello", "shout": "HELLO"}
    assert post.to_array(["title"]) == {"title": "hello"}
    assert post.to_array(["title", "author.name"], ["author"]) == {"title": "hello", "author": {"name": "Ann"}}
    assert post.to_array(["title"], ["tags"]) == {
        "title": "hello",
        "tags": [{"name": "Bob", "email": "bob@example.com"}],
    }


def test_to_array_without_recursion_keeps_objects():
    author = Author("Ann", "ann@example.com")
    post = Post("hello", author)

    assert post.to_array(["title"], ["author"], recursive=False)["author"] is author


def test_error_bag_keeps_first_error_per_field():
    post = Post("hello", Author("Ann", "a@example.com"))
    assert not post.has_errors()

    post.add_error("title", "too short")
    post.add_error("title", "too plain")
    post.add_errors({"author": ["missing"], "tags": "bad"})

    assert post.has_errors()
    assert post.has_errors("title")
    assert post.first_errors() == {"title": "too short", "author": "missing", "tags": "bad"}
    assert post.first_error("title") == "too short"
    assert post.get_errors("title") == ["too short", "too plain"]

    post.clear_errors("title")
    assert not post.has_errors("title")
    post.clear_errors()
    assert not post.has_errors()


def test_form_resource_collects_pydantic_errors():
    form = ArticleForm()
    assert form.load({"title": "ab", "status": "archived", "unknown": 1})

    assert not form.validate()
    errors = form.first_errors()
    assert set(errors) == {"title", "body", "status"}
    assert form.first_error("body") == "Field required"


def test_form_resource_normalizes_on_success():
    form = ArticleForm(title="Valid title", body="text")

    assert form.validate()
    assert form.status == "draft"
    assert form.to_array() == {"title": "Valid title", "body": "text", "status": "draft"}


def test_form_load_ignores_empty_payload():
    assert not RegisterForm().load({})
    assert not RegisterForm().load(None)


def test_login_form_reports_bad_credentials(db_session):
    db_session.add(User(username="alice", email="alice@example.com", display_name="Alice", password_hash=hash_password("secret-1")))
    db_session.commit()

    form = LoginForm()
    form.load({"username": "alice", "password": "wrong-pass"})
    assert form.authenticate(db_session) is None
    assert form.first_errors() == {"password": "Incorrect username or password."}

    form = LoginForm()
    form.load({"username": "alice", "password": "secret-1"})
    assert form.authenticate(db_session).username == "alice"


def test_register_form_rejects_duplicates(db_session):
    db_session.add(User(username="alice", email="alice@example.com", display_name="Alice", password_hash="x"))
    db_session.commit()

    form = RegisterForm()
    form.load({"username": "alice", "email": "alice@example.com", "password": "secret-1"})

    assert form.validate()
    assert not form.ensure_unique(db_session)
    assert set(form.first_errors()) == {"username", "email"}


def test_orm_resource_fields_and_related_records(db_session):
    user = User(id=uuid4(), username="bob", email="bob@example.com", display_name="Bob", password_hash="x")
    db_session.add(user)
    db_session.add(Article(title="First", body="body", author_id=user.id))
    db_session.commit()
    db_session.expunge_all()

    article = db_session.scalar(select(Article))
    assert "author" in article.extra_fields()
    assert article.related_records() == {}
    assert set(article.to_array()) == {"id", "created_at", "updated_at", "title", "body", "status", "author_id"}

    db_session.expunge_all()
    article = db_session.scalar(select(Article).options(selectinload(Article.author)))
    related = article.related_records()
    assert list(related) == ["author"]

    data = article.to_array([], list(related))
    assert data["author"]["username"] == "bob"
    assert "password_hash" not in data["author"]
