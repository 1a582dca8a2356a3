"""Inbox and thread page tests.

Tests cover:
    - Opening a chat by username or user id, from either side
    - Empty, unknown and self targets
    - ?to= prefill on the inbox
    - Thread page: 404 for missing, 403 for outsiders
    - Sending a message notifies the other participant
    - Inbox query count does not grow with the number of threads
"""

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext
from django.urls import reverse

from community.models import Message, MessageThread, Notification, User


pytestmark = pytest.mark.django_db

INBOX = "/messages"


def test_open_chat_by_username_is_case_insensitive(client, alice, bob):
    client.force_login(alice)

    response = client.post(INBOX, {"target": "  SeaMan21 "})

    thread = MessageThread.objects.get()
    assert response.status_code == 302
    assert response.url == reverse("thread_detail", args=[thread.pk])
    assert {thread.user1_id, thread.user2_id} == {alice.pk, bob.pk}


def test_open_chat_from_both_sides_reuses_thread(client, alice, bob):
    client.force_login(alice)
    first = client.post(INBOX, {"target": str(bob.pk)})
    client.force_login(bob)
    second = client.post(INBOX, {"target": "alice"})

    assert first.url == second.url
    assert MessageThread.objects.count() == 1


def test_open_chat_with_empty_target(client, alice):
    client.force_login(alice)

    response = client.post(INBOX, {"target": "   "}, follow=True)

    assert "Enter a username or user id." in response.content.decode()


def test_open_chat_with_unknown_user(client, alice):
    client.force_login(alice)

    response = client.post(INBOX, {"target": "ghost_ship"}, follow=True)

    assert "User not found." in response.content.decode()
    assert MessageThread.objects.count() == 0


def test_open_chat_with_self(client, alice):
    client.force_login(alice)

    response = client.post(INBOX, {"target": "alice"}, follow=True)

    assert "You cannot message yourself." in response.content.decode()
    assert MessageThread.objects.count() == 0


def test_inbox_prefills_target_from_query(client, alice, bob):
    client.force_login(alice)

    by_id = client.get(INBOX, {"to": str(bob.pk)})
    by_name = client.get(INBOX, {"to": "seaman21"})

    assert by_id.context["target"].user_id == bob.pk
    assert by_name.context["target"].user_id == bob.pk


def test_inbox_unknown_query_target(client, alice):
    client.force_login(alice)

    response = client.get(INBOX, {"to": "00000000-0000-4000-8000-000000000000"})

    assert response.context["target"] is None
    assert "User not found." in response.content.decode()


def test_inbox_lists_conversations(client, alice, bob, carol):
    with_bob, _ = MessageThread.objects.resolve(alice, bob)
    with_carol, _ = MessageThread.objects.resolve(carol, alice)
    with_bob.post_message(bob, "Ahoy")
    client.force_login(alice)

    response = client.get(INBOX)

    conversations = response.context["conversations"]
    by_thread = {c["thread"].pk: c for c in conversations}
    assert set(by_thread) == {with_bob.pk, with_carol.pk}
    assert by_thread[with_bob.pk]["other_name"] == "seaman21"
    assert by_thread[with_bob.pk]["latest_message"].body == "Ahoy"
    assert by_thread[with_carol.pk]["other_name"] == f"user_{str(carol.pk)[:8]}"
    assert by_thread[with_carol.pk]["latest_message"] is None


def test_thread_page_for_participant(client, alice, bob):
    thread, _ = MessageThread.objects.resolve(alice, bob)
    thread.post_message(alice, "First")
    thread.post_message(bob, "Second")
    client.force_login(bob)

    response = client.get(reverse("thread_detail", args=[thread.pk]))

    assert response.status_code == 200
    assert response.context["other_name"] == "alice"
    assert [m.body for m in response.context["thread_messages"]] == ["First", "Second"]


def test_thread_page_missing(client, alice):
    client.force_login(alice)

    response = client.get(
        reverse("thread_detail", args=["00000000-0000-4000-8000-000000000000"])
    )

    assert response.status_code == 404
    assert "Thread not found." in response.content.decode()


def test_thread_page_denies_outsider(client, alice, bob, carol):
    thread, _ = MessageThread.objects.resolve(alice, bob)
    client.force_login(carol)

    response = client.get(reverse("thread_detail", args=[thread.pk]))
    posted = client.post(reverse("thread_detail", args=[thread.pk]), {"body": "hi"})

    assert response.status_code == 403
    assert "You do not have access to this conversation." in response.content.decode()
    assert posted.status_code == 403
    assert Message.objects.count() == 0


def test_send_message_notifies_other_participant(client, alice, bob):
    thread, _ = MessageThread.objects.resolve(alice, bob)
    client.force_login(alice)

    response = client.post(
        reverse("thread_detail", args=[thread.pk]), {"body": "  Cargo docs ready  "}
    )

    assert response.status_code == 302
    assert thread.messages.get().body == "Cargo docs ready"
    assert Notification.objects.filter(user=bob, read=False).count() == 1
    assert not Notification.objects.filter(user=alice).exists()


def test_send_empty_message(client, alice, bob):
    thread, _ = MessageThread.objects.resolve(alice, bob)
    client.force_login(alice)

    response = client.post(
        reverse("thread_detail", args=[thread.pk]), {"body": "  "}, follow=True
    )

    assert "Message cannot be empty." in response.content.decode()
    assert Message.objects.count() == 0


def test_inbox_requires_login(client):
    response = client.get(INBOX)
    assert response.status_code == 302
    assert response.url.startswith("/login")


def test_inbox_queries_do_not_grow_with_threads(client, alice, bob, carol):
    first, _ = MessageThread.objects.resolve(alice, bob)
    first.post_message(bob, "Ahoy")
    client.force_login(alice)

    with CaptureQueriesContext(connection) as one_thread:
        client.get(INBOX)

    for n in range(3):
        other = User.objects.create_user(email=f"crew{n}@example.com", password="x")
        thread, _ = MessageThread.objects.resolve(other, alice)
        thread.post_message(other, f"Message {n}")
    MessageThread.objects.resolve(alice, carol)

    with CaptureQueriesContext(connection) as five_threads:
        response = client.get(INBOX)

    assert len(response.context["conversations"]) == 5
    assert len(five_threads) == len(one_thread)
    latest = {c["thread"].pk: c["latest_message"] for c in response.context["conversations"]}
    assert latest[first.pk].body == "Ahoy"
