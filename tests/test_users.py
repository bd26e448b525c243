"""Session workflow tests: registration, login, token rotation, profile changes"""
from datetime import datetime, timedelta

from jose import jwt

from vidtube.config import get_settings
from vidtube.core.errors import InternalError
from vidtube.models.subscription import Subscription
from vidtube.models.user import User
from vidtube.repositories import user_repository

TEST_PASSWORD = "pw123"

AVATAR = ("avatar.png", b"\x89PNG avatar", "image/png")
COVER = ("cover.jpg", b"\xff\xd8 cover", "image/jpeg")


def register(client, files=None, **overrides):
    data = {"username": "Alice", "email": "a@x.com", "password": TEST_PASSWORD, "fullName": "Alice"}
    data.update(overrides)
    data = {k: v for k, v in data.items() if v is not None}
    if files is None:
        files = {"avatar": AVATAR}
    return client.post("/api/v1/users/register", data=data, files=files)


def login(client, **body):
    response = client.post("/api/v1/users/login", json=body)
    # token cookies are Secure; keep requests explicit about which token they send
    client.cookies.clear()
    return response


def refresh(client, token):
    client.cookies.clear()
    return client.post("/api/v1/users/refresh-token", json={"refreshToken": token})


# ---------- Register ----------


def test_register_stores_lowercase_username_and_hides_secrets(client, db_session, storage, temp_dir):
    response = register(client, files={"avatar": AVATAR, "coverImage": COVER})

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == 201
    assert body["success"] is True
    data = body["data"]
    assert data["username"] == "alice"
    assert data["fullName"] == "Alice"
    assert "password" not in data
    assert "refreshToken" not in data
    assert data["avatar"].startswith("https://res.cloudinary.com/demo/image/upload/")
    assert data["coverImage"].endswith(".jpg")

    user = db_session.query(User).filter(User.id == data["id"]).one()
    assert user.username == "alice"
    assert user.password != TEST_PASSWORD
    assert user.is_password_correct(TEST_PASSWORD)
    assert len(storage.uploaded) == 2
    assert list(temp_dir.iterdir()) == []


def test_register_without_cover_image(client, storage):
    response = register(client)

    assert response.status_code == 201
    assert response.json()["data"]["coverImage"] == ""
    assert len(storage.uploaded) == 1


def test_register_missing_fields_removes_temp_files(client, db_session, storage, temp_dir):
    response = register(client, files={"avatar": AVATAR, "coverImage": COVER}, email=None)

    assert response.status_code == 400
    assert response.json() == {"status": 400, "message": "All fields are required", "success": False}
    assert storage.upload_attempts == []
    assert list(temp_dir.iterdir()) == []
    assert db_session.query(User).count() == 0


def test_register_without_avatar_removes_cover_temp_file(client, storage, temp_dir):
    response = register(client, files={"coverImage": COVER})

    assert response.status_code == 400
    assert response.json()["message"] == "Avatar file is required"
    assert storage.upload_attempts == []
    assert list(temp_dir.iterdir()) == []


def test_register_duplicate_username_or_email_conflicts(client, db_session, make_user, storage, temp_dir):
    make_user("alice", email="taken@x.com")

    by_username = register(client, files={"avatar": AVATAR, "coverImage": COVER}, username="ALICE")
    by_email = register(client, username="someone", email="taken@x.com")

    assert by_username.status_code == 409
    assert by_email.status_code == 409
    assert db_session.query(User).count() == 1
    assert storage.upload_attempts == []
    assert list(temp_dir.iterdir()) == []


def test_register_fails_when_avatar_upload_fails(client, db_session, storage, temp_dir):
    storage.fail_extensions = {".png"}

    response = register(client, files={"avatar": AVATAR, "coverImage": COVER})

    assert response.status_code == 400
    assert db_session.query(User).count() == 0
    assert storage.uploaded == []
    assert list(temp_dir.iterdir()) == []


def test_register_store_failure_removes_new_uploads(client, db_session, storage, temp_dir, monkeypatch):
    def failing_create_user(*args, **kwargs):
        raise InternalError("database unavailable")

    monkeypatch.setattr(user_repository, "create_user", failing_create_user)

    response = register(client, files={"avatar": AVATAR, "coverImage": COVER})

    assert response.status_code == 500
    assert len(storage.uploaded) == 2
    assert storage.deleted == storage.uploaded
    assert db_session.query(User).count() == 0
    assert list(temp_dir.iterdir()) == []


# ---------- Login / logout / refresh ----------


def test_login_issues_distinct_tokens_and_stores_refresh_token(client, db_session, make_user):
    user = make_user("alice")

    response = login(client, username="Alice", password=TEST_PASSWORD)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["accessToken"] != data["refreshToken"]
    assert data["user"]["id"] == user.id
    assert "password" not in data["user"]
    db_session.refresh(user)
    assert user.refresh_token == data["refreshToken"]

    cookies = response.headers.get_list("set-cookie")
    access_cookie = next(c for c in cookies if c.startswith("accessToken="))
    refresh_cookie = next(c for c in cookies if c.startswith("refreshToken="))
    for cookie in (access_cookie, refresh_cookie):
        assert "HttpOnly" in cookie
        assert "Secure" in cookie

    me = client.get("/api/v1/users/current-user", headers={"Authorization": f"Bearer {data['accessToken']}"})
    assert me.status_code == 200
    assert me.json()["data"]["username"] == "alice"


def test_login_by_email(client, make_user):
    make_user("alice", email="a@x.com")

    response = login(client, email="a@x.com", password=TEST_PASSWORD)

    assert response.status_code == 200


def test_login_failures(client, make_user):
    make_user("alice")

    assert login(client, password=TEST_PASSWORD).status_code == 400
    assert login(client, username="alice").status_code == 400
    assert login(client, username="nobody", password=TEST_PASSWORD).status_code == 404
    assert login(client, username="alice", password="wrong").status_code == 401


def test_refresh_rotates_and_rejects_replay(client, db_session, make_user):
    user = make_user("alice")
    first = login(client, username="alice", password=TEST_PASSWORD).json()["data"]["refreshToken"]

    second_response = refresh(client, first)
    assert second_response.status_code == 200
    second = second_response.json()["data"]["refreshToken"]
    third_response = refresh(client, second)
    assert third_response.status_code == 200
    third = third_response.json()["data"]["refreshToken"]

    assert len({first, second, third}) == 3
    assert refresh(client, first).status_code == 401
    db_session.refresh(user)
    assert user.refresh_token == third
    assert refresh(client, third).status_code == 200


def test_second_login_supersedes_only_the_first_session(client, make_user):
    make_user("alice")
    laptop = login(client, username="alice", password=TEST_PASSWORD).json()["data"]["refreshToken"]
    phone = login(client, username="alice", password=TEST_PASSWORD).json()["data"]["refreshToken"]

    stale = refresh(client, laptop)
    current = refresh(client, phone)

    assert stale.status_code == 401
    assert stale.json()["message"] == "Refresh token is expired or used"
    assert current.status_code == 200


def test_refresh_sets_cookies(client, make_user):
    make_user("alice")
    token = login(client, username="alice", password=TEST_PASSWORD).json()["data"]["refreshToken"]

    response = refresh(client, token)

    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith("accessToken=") for c in cookies)
    assert any(c.startswith("refreshToken=") for c in cookies)


def test_refresh_requires_valid_token(client):
    client.cookies.clear()
    assert client.post("/api/v1/users/refresh-token").status_code == 401
    assert refresh(client, "not-a-jwt").status_code == 401


def test_access_token_is_not_a_refresh_token(client, make_user):
    make_user("alice")
    access = login(client, username="alice", password=TEST_PASSWORD).json()["data"]["accessToken"]

    assert refresh(client, access).status_code == 401


def test_logout_clears_refresh_token(client, db_session, make_user):
    user = make_user("alice")
    tokens = login(client, username="alice", password=TEST_PASSWORD).json()["data"]

    response = client.post("/api/v1/users/logout", headers={"Authorization": f"Bearer {tokens['accessToken']}"})

    assert response.status_code == 200
    cleared = response.headers.get_list("set-cookie")
    assert any(c.startswith("accessToken=") for c in cleared)
    assert any(c.startswith("refreshToken=") for c in cleared)
    db_session.refresh(user)
    assert user.refresh_token is None
    assert refresh(client, tokens["refreshToken"]).status_code == 401


def test_protected_routes_require_token(client):
    assert client.get("/api/v1/users/current-user").status_code == 401
    assert client.post("/api/v1/users/logout").status_code == 401
    bad = client.get("/api/v1/users/current-user", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401
    assert bad.json()["success"] is False


def test_expired_cookie_falls_back_to_bearer_header(client, make_user, auth_headers):
    user = make_user("alice")
    settings = get_settings()
    expired = jwt.encode(
        {"sub": user.id, "type": "access", "exp": datetime.utcnow() - timedelta(minutes=1)},
        settings.access_token_secret,
        algorithm=settings.algorithm,
    )
    client.cookies.set("accessToken", expired)

    with_header = client.get("/api/v1/users/current-user", headers=auth_headers(user))
    cookie_only = client.get("/api/v1/users/current-user")

    assert with_header.status_code == 200
    assert with_header.json()["data"]["username"] == "alice"
    assert cookie_only.status_code == 401


# ---------- Password / account details ----------


def test_change_password(client, make_user, auth_headers):
    user = make_user("alice")
    headers = auth_headers(user)

    missing = client.post("/api/v1/users/change-password", json={"oldPassword": TEST_PASSWORD}, headers=headers)
    wrong = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": "nope", "newPassword": "new-secret"},
        headers=headers,
    )
    ok = client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": TEST_PASSWORD, "newPassword": "new-secret"},
        headers=headers,
    )

    assert missing.status_code == 400
    assert wrong.status_code == 400
    assert ok.status_code == 200
    assert login(client, username="alice", password=TEST_PASSWORD).status_code == 401
    assert login(client, username="alice", password="new-secret").status_code == 200


def test_update_account_details(client, make_user, auth_headers):
    user = make_user("alice")
    make_user("bob", email="bob@x.com")
    headers = auth_headers(user)

    empty = client.patch("/api/v1/users/update-account", json={}, headers=headers)
    name_only = client.patch("/api/v1/users/update-account", json={"fullName": "Alice Liddell"}, headers=headers)
    taken = client.patch("/api/v1/users/update-account", json={"email": "bob@x.com"}, headers=headers)

    assert empty.status_code == 400
    assert name_only.status_code == 200
    assert name_only.json()["data"]["fullName"] == "Alice Liddell"
    assert name_only.json()["data"]["email"] == "alice@example.com"
    assert taken.status_code == 409


# ---------- Avatar / cover image ----------


def test_update_avatar_deletes_old_file_after_new_upload(client, db_session, make_user, auth_headers, storage, temp_dir):
    user = make_user("alice")
    old_avatar = user.avatar

    response = client.patch("/api/v1/users/avatar", files={"avatar": AVATAR}, headers=auth_headers(user))

    assert response.status_code == 200
    new_avatar = response.json()["data"]["avatar"]
    assert new_avatar == storage.uploaded[0]
    assert storage.deleted == [old_avatar]
    db_session.refresh(user)
    assert user.avatar == new_avatar
    assert list(temp_dir.iterdir()) == []


def test_update_avatar_upload_failure_keeps_record(client, db_session, make_user, auth_headers, storage, temp_dir):
    user = make_user("alice")
    old_avatar = user.avatar
    storage.fail_all = True

    response = client.patch("/api/v1/users/avatar", files={"avatar": AVATAR}, headers=auth_headers(user))

    assert response.status_code == 400
    assert storage.deleted == []
    db_session.refresh(user)
    assert user.avatar == old_avatar
    assert list(temp_dir.iterdir()) == []


def test_update_avatar_store_failure_removes_new_upload(client, db_session, make_user, auth_headers, storage, monkeypatch):
    user = make_user("alice")
    old_avatar = user.avatar
    headers = auth_headers(user)

    def failing_save(*args, **kwargs):
        raise InternalError("database unavailable")

    monkeypatch.setattr(user_repository, "save", failing_save)

    response = client.patch("/api/v1/users/avatar", files={"avatar": AVATAR}, headers=headers)

    assert response.status_code == 500
    assert len(storage.uploaded) == 1
    assert storage.deleted == storage.uploaded
    db_session.refresh(user)
    assert user.avatar == old_avatar


def test_update_avatar_requires_file(client, make_user, auth_headers, storage):
    user = make_user("alice")

    response = client.patch("/api/v1/users/avatar", headers=auth_headers(user))

    assert response.status_code == 400
    assert storage.upload_attempts == []


def test_update_cover_image(client, make_user, auth_headers, storage):
    user = make_user("alice")

    first = client.patch("/api/v1/users/cover-image", files={"coverImage": COVER}, headers=auth_headers(user))
    second = client.patch("/api/v1/users/cover-image", files={"coverImage": COVER}, headers=auth_headers(user))

    assert first.status_code == 200
    assert second.status_code == 200
    # no previous cover on the first update, so only the second one deletes
    assert storage.deleted == [first.json()["data"]["coverImage"]]


# ---------- Channel profile / subscriptions ----------


def test_channel_profile_counts(client, db_session, make_user, auth_headers):
    alice = make_user("alice")
    bob = make_user("bob")
    carol = make_user("carol")
    db_session.add_all([
        Subscription(subscriber_id=bob.id, channel_id=alice.id),
        Subscription(subscriber_id=carol.id, channel_id=alice.id),
        Subscription(subscriber_id=alice.id, channel_id=carol.id),
    ])
    db_session.commit()

    as_bob = client.get("/api/v1/users/c/ALICE", headers=auth_headers(bob)).json()["data"]
    as_alice = client.get("/api/v1/users/c/alice", headers=auth_headers(alice)).json()["data"]

    assert as_bob["subscribersCount"] == 2
    assert as_bob["channelsSubscribedToCount"] == 1
    assert as_bob["isSubscribed"] is True
    assert as_bob["isOwner"] is False
    assert "password" not in as_bob
    assert "refreshToken" not in as_bob
    assert as_alice["isSubscribed"] is False
    assert as_alice["isOwner"] is True


def test_channel_profile_unknown_channel(client, make_user, auth_headers):
    user = make_user("alice")

    response = client.get("/api/v1/users/c/ghost", headers=auth_headers(user))

    assert response.status_code == 404


def test_toggle_subscription(client, make_user, auth_headers):
    alice, bob = make_user("alice"), make_user("bob")
    headers = auth_headers(bob)

    on = client.post(f"/api/v1/subscriptions/c/{alice.id}", headers=headers)
    profile = client.get("/api/v1/users/c/alice", headers=headers).json()["data"]
    off = client.post(f"/api/v1/subscriptions/c/{alice.id}", headers=headers)
    own = client.post(f"/api/v1/subscriptions/c/{bob.id}", headers=headers)
    bad = client.post("/api/v1/subscriptions/c/not-an-id", headers=headers)

    assert on.json()["data"] == {"subscribed": True}
    assert profile["subscribersCount"] == 1
    assert off.json()["data"] == {"subscribed": False}
    assert own.status_code == 400
    assert bad.status_code == 400
