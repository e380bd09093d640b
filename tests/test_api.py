"""
API tests against a memory-backed hub

Each test gets a fresh app and store (see conftest.py).
"""


class TestAuth:
    def test_register_login_and_me(self, client, register):
        headers = register("carol@example.com", "Carol")

        me = client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        user = me.json()["user"]
        assert user["displayName"] == "Carol"
        assert user["isAdmin"] is False
        assert "passwordHash" not in user

        login = client.post("/api/auth/login", json={"email": "CAROL@example.com", "password": "hunter22"})
        assert login.status_code == 200
        assert login.json()["user"]["uid"] == user["uid"]

    def test_wrong_password(self, client, register):
        register("dave@example.com")
        response = client.post("/api/auth/login", json={"email": "dave@example.com", "password": "nope-nope"})
        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Invalid email or password",
            "type": "AuthenticationError",
        }

    def test_duplicate_email(self, client, register):
        register("erin@example.com")
        response = client.post(
            "/api/auth/register", json={"email": "Erin@example.com", "password": "hunter22"}
        )
        assert response.status_code == 409

    def test_admin_claim_from_configured_email(self, client, register):
        headers = register("admin@example.com", "Admin")
        assert client.get("/api/auth/me", headers=headers).json()["user"]["isAdmin"] is True

    def test_update_display_name(self, client, register):
        headers = register("frank@example.com", "Frank")
        response = client.patch("/api/auth/me", json={"displayName": "  Franky "}, headers=headers)
        assert response.json()["user"]["displayName"] == "Franky"

    def test_writes_require_sign_in(self, client):
        response = client.post("/api/polls", json={"question": "Q?", "options": ["a", "b"]})
        assert response.status_code == 401
        assert response.json()["success"] is False


class TestPolls:
    def test_vote_switch_and_results(self, client, register):
        alice = register("alice@example.com", "Alice")
        bob = register("bob@example.com", "Bob")

        created = client.post(
            "/api/polls",
            json={"question": "Best pet?", "options": ["Cats", " ", "Dogs"]},
            headers=alice,
        ).json()["poll"]
        poll_id = created["id"]
        assert [option["text"] for option in created["options"]] == ["Cats", "Dogs"]
        cats, dogs = [option["id"] for option in created["options"]]

        client.post(f"/api/polls/{poll_id}/vote", json={"optionId": cats}, headers=alice)
        switched = client.post(f"/api/polls/{poll_id}/vote", json={"optionId": dogs}, headers=alice)
        assert switched.json()["tally"]["total"] == 1
        client.post(f"/api/polls/{poll_id}/vote", json={"optionId": cats}, headers=bob)

        poll = client.get(f"/api/polls/{poll_id}").json()["poll"]
        assert poll["voteCount"] == 2
        assert [r["percentage"] for r in poll["results"]] == [50, 50]

        votes = client.get("/api/polls/my-votes", headers=alice).json()["votes"]
        assert votes == {poll_id: dogs}

    def test_needs_two_options(self, client, register):
        alice = register("alice@example.com")
        response = client.post("/api/polls", json={"question": "Q?", "options": ["only", ""]}, headers=alice)
        assert response.status_code == 400
        assert response.json()["type"] == "ValidationError"

    def test_invalid_option_and_unknown_poll(self, client, register):
        alice = register("alice@example.com")
        poll_id = client.post(
            "/api/polls", json={"question": "Q?", "options": ["a", "b"]}, headers=alice
        ).json()["poll"]["id"]

        bad = client.post(f"/api/polls/{poll_id}/vote", json={"optionId": "nope"}, headers=alice)
        assert bad.status_code == 400
        assert bad.json()["type"] == "InvalidSelection"

        missing = client.post("/api/polls/missing/vote", json={"optionId": "0"}, headers=alice)
        assert missing.status_code == 404
        assert missing.json()["type"] == "UnknownSubject"

    def test_edit_keeps_option_ids_and_counts(self, client, register):
        alice = register("alice@example.com")
        bob = register("bob@example.com")
        poll = client.post(
            "/api/polls", json={"question": "Q?", "options": ["a", "b"]}, headers=alice
        ).json()["poll"]
        first = poll["options"][0]["id"]
        client.post(f"/api/polls/{poll['id']}/vote", json={"optionId": first}, headers=bob)

        forbidden = client.patch(f"/api/polls/{poll['id']}", json={"question": "Hijack"}, headers=bob)
        assert forbidden.status_code == 403

        edited = client.patch(
            f"/api/polls/{poll['id']}",
            json={"question": "New?", "options": {first: "A!"}},
            headers=alice,
        ).json()["poll"]
        assert edited["question"] == "New?"
        assert edited["options"][0] == {"id": first, "text": "A!", "voteCount": 1}
        assert "updatedAt" in edited

    def test_delete_removes_votes(self, client, register, hub):
        alice = register("alice@example.com")
        poll_id = client.post(
            "/api/polls", json={"question": "Q?", "options": ["a", "b"]}, headers=alice
        ).json()["poll"]["id"]
        client.post(f"/api/polls/{poll_id}/vote", json={"optionId": "0"}, headers=alice)

        assert client.delete(f"/api/polls/{poll_id}", headers=alice).status_code == 200
        assert client.get(f"/api/polls/{poll_id}").status_code == 404
        assert client.get("/api/polls/my-votes", headers=alice).json()["votes"] == {}

    def test_malformed_poll_id_is_a_bad_request(self, client, register):
        alice = register("alice@example.com")
        response = client.post("/api/polls/a.b/vote", json={"optionId": "0"}, headers=alice)
        assert response.status_code == 400
        assert response.json()["type"] == "InvalidPathError"


class TestIdeas:
    def test_one_idea_per_day(self, client, register):
        alice = register("alice@example.com")
        first = client.post("/api/ideas", json={"text": "Community fridge"}, headers=alice)
        assert first.status_code == 200
        second = client.post("/api/ideas", json={"text": "Another"}, headers=alice)
        assert second.status_code == 409
        assert client.get("/api/ideas/today", headers=alice).json()["submitted"] is True

    def test_reactions_and_leaderboard(self, client, register):
        alice = register("alice@example.com", "Alice")
        bob = register("bob@example.com", "Bob")
        idea_a = client.post("/api/ideas", json={"text": "Idea A"}, headers=alice).json()["idea"]["id"]
        idea_b = client.post("/api/ideas", json={"text": "Idea B"}, headers=bob).json()["idea"]["id"]

        toggled = client.post(f"/api/ideas/{idea_b}/reactions", json={"tag": "fire"}, headers=alice)
        assert toggled.json()["active"] is True
        assert toggled.json()["reactionCounts"] == {"🔥": 1, "💭": 0}
        client.post(f"/api/ideas/{idea_b}/reactions", json={"tag": "💭"}, headers=bob)

        popular = client.get("/api/ideas", params={"sort": "popular"}).json()["ideas"]
        assert popular[0]["id"] == idea_b

        board = client.get("/api/ideas/leaderboard").json()["leaderboard"]
        assert board[0] == {"authorId": popular[0]["authorId"], "authorName": "Bob", "score": 2}
        assert board[1]["score"] == 0

        untoggled = client.post(f"/api/ideas/{idea_b}/reactions", json={"tag": "🔥"}, headers=alice)
        assert untoggled.json()["active"] is False
        assert client.get("/api/ideas/random").json()["idea"]["id"] in {idea_a, idea_b}

    def test_bad_reaction_tag_and_sort(self, client, register):
        alice = register("alice@example.com")
        idea_id = client.post("/api/ideas", json={"text": "Idea"}, headers=alice).json()["idea"]["id"]
        assert client.post(f"/api/ideas/{idea_id}/reactions", json={"tag": "😆"}, headers=alice).status_code == 400
        assert client.get("/api/ideas", params={"sort": "oldest"}).status_code == 400

    def test_malformed_idea_id_is_a_bad_request(self, client, register):
        alice = register("alice@example.com")
        response = client.post("/api/ideas/i.1/reactions", json={"tag": "fire"}, headers=alice)
        assert response.status_code == 400
        assert response.json()["type"] == "InvalidPathError"

    def test_random_with_no_ideas(self, client):
        assert client.get("/api/ideas/random").status_code == 404


class TestWouldYouRather:
    def test_vote_before_comment(self, client, register):
        alice = register("alice@example.com", "Alice")
        question_id = client.post(
            "/api/wyr", json={"optionA": "Fly", "optionB": "Teleport"}, headers=alice
        ).json()["question"]["id"]

        early = client.post(f"/api/wyr/{question_id}/comments", json={"text": "Hmm"}, headers=alice)
        assert early.status_code == 409

        vote = client.post(f"/api/wyr/{question_id}/vote", json={"choice": "b"}, headers=alice)
        assert vote.json()["tally"]["counts"] == {"A": 0, "B": 1}

        client.post(f"/api/wyr/{question_id}/comments", json={"text": "First"}, headers=alice)
        client.post(f"/api/wyr/{question_id}/comments", json={"text": "Second"}, headers=alice)
        comments = client.get(f"/api/wyr/{question_id}/comments").json()["comments"]
        assert [c["text"] for c in comments] == ["First", "Second"]
        assert comments[0]["choice"] == "B"

        question = client.get(f"/api/wyr/{question_id}", headers=alice).json()["question"]
        assert question["resultsHidden"] is False
        assert (question["percentA"], question["percentB"], question["totalVotes"]) == (0, 100, 1)

    def test_results_hidden_until_voted(self, client, register):
        alice = register("alice@example.com", "Alice")
        bob = register("bob@example.com", "Bob")
        question_id = client.post(
            "/api/wyr", json={"optionA": "Sea", "optionB": "Mountains"}, headers=alice
        ).json()["question"]["id"]
        client.post(f"/api/wyr/{question_id}/vote", json={"choice": "A"}, headers=alice)

        for headers in ({}, bob):
            question = client.get(f"/api/wyr/{question_id}", headers=headers).json()["question"]
            assert question["resultsHidden"] is True
            assert "percentA" not in question
            assert "votesA" not in question
            listed = client.get("/api/wyr", headers=headers).json()["questions"]
            assert "totalVotes" not in listed[0]

        client.post(f"/api/wyr/{question_id}/vote", json={"choice": "B"}, headers=bob)
        listed = client.get("/api/wyr", headers=bob).json()["questions"]
        assert (listed[0]["percentA"], listed[0]["percentB"], listed[0]["totalVotes"]) == (50, 50, 2)

    def test_delete_removes_votes_and_comments(self, client, register, hub):
        alice = register("alice@example.com")
        question_id = client.post(
            "/api/wyr", json={"optionA": "Tea", "optionB": "Coffee"}, headers=alice
        ).json()["question"]["id"]
        client.post(f"/api/wyr/{question_id}/vote", json={"choice": "A"}, headers=alice)
        client.post(f"/api/wyr/{question_id}/comments", json={"text": "Tea!"}, headers=alice)

        assert client.delete(f"/api/wyr/{question_id}", headers=alice).status_code == 200
        assert client.get("/api/wyr/my-votes", headers=alice).json()["votes"] == {}
        assert hub.store.dump().get("wyr_comments", {}) == {}


class TestQuestions:
    def test_answers_and_reactions(self, client, register):
        alice = register("alice@example.com", "Alice")
        bob = register("bob@example.com", "Bob")
        question_id = client.post(
            "/api/questions", json={"text": "What should we build next?"}, headers=alice
        ).json()["question"]["id"]

        answer = client.post(
            f"/api/questions/{question_id}/answers",
            json={"text": "A skate park", "anonymous": True},
            headers=bob,
        ).json()["answer"]
        assert answer["authorName"] == "Anonymous"
        assert answer["anonymous"] is True

        question = client.get(f"/api/questions/{question_id}").json()["question"]
        assert question["answerCount"] == 1

        client.post(f"/api/questions/answers/{answer['id']}/reactions", json={"tag": "heart"}, headers=alice)
        answers = client.get(f"/api/questions/{question_id}/answers", headers=alice).json()["answers"]
        assert answers[0]["reactionCounts"] == {"🔥": 0, "❤️": 1, "😆": 0}
        assert answers[0]["myReactions"] == {"❤️": True}

    def test_question_length_limit(self, client, register):
        alice = register("alice@example.com")
        response = client.post("/api/questions", json={"text": "x" * 501}, headers=alice)
        assert response.status_code == 400

    def test_delete_by_admin_removes_answers(self, client, register, hub):
        alice = register("alice@example.com")
        admin = register("admin@example.com")
        question_id = client.post(
            "/api/questions", json={"text": "Q?"}, headers=alice
        ).json()["question"]["id"]
        client.post(f"/api/questions/{question_id}/answers", json={"text": "A"}, headers=alice)

        assert client.delete(f"/api/questions/{question_id}", headers=admin).status_code == 200
        assert hub.store.dump().get("answers", {}) == {}


class TestAdminAndBlog:
    def test_admin_routes_require_role(self, client, register):
        user = register("user@example.com")
        response = client.post("/api/admin/posts", json={"title": "T", "content": "C"}, headers=user)
        assert response.status_code == 403
        assert response.json()["type"] == "PermissionDeniedError"

    def test_posts_and_subscriber_count(self, client, register):
        admin = register("admin@example.com", "Admin")
        client.post(
            "/api/admin/posts",
            json={"title": "Launch", "content": "We are live", "youtubeUrl": "https://youtu.be/dQw4w9WgXcQ", "featured": True},
            headers=admin,
        )
        client.post("/api/admin/posts", json={"title": "Notes", "content": "Small update"}, headers=admin)

        posts = client.get("/api/blog/posts").json()["posts"]
        assert len(posts) == 2
        featured = client.get("/api/blog/posts", params={"filter": "featured"}).json()["posts"]
        assert [p["title"] for p in featured] == ["Launch"]
        assert featured[0]["youtubeId"] == "dQw4w9WgXcQ"

        assert client.get("/api/blog/subscriber-count").json()["count"] == 0
        client.put("/api/admin/subscriber-count", json={"count": 1200}, headers=admin)
        assert client.get("/api/blog/subscriber-count").json()["count"] == 1200

        negative = client.put("/api/admin/subscriber-count", json={"count": -1}, headers=admin)
        assert negative.status_code == 400


class TestAccount:
    def test_my_content_and_delete(self, client, register):
        alice = register("alice@example.com")
        bob = register("bob@example.com")
        poll_id = client.post(
            "/api/polls", json={"question": "Q?", "options": ["a", "b"]}, headers=alice
        ).json()["poll"]["id"]
        client.post("/api/ideas", json={"text": "Mine"}, headers=alice)
        client.post("/api/ideas", json={"text": "Bob's"}, headers=bob)

        content = client.get("/api/account/content", headers=alice).json()
        assert [p["id"] for p in content["polls"]] == [poll_id]
        assert [i["text"] for i in content["ideas"]] == ["Mine"]
        assert content["questions"] == [] and content["wyr"] == []

        assert client.delete(f"/api/account/content/poll/{poll_id}", headers=bob).status_code == 403
        assert client.delete(f"/api/account/content/poll/{poll_id}", headers=alice).status_code == 200
        assert client.delete(f"/api/account/content/video/{poll_id}", headers=alice).status_code == 400


class TestMonitoring:
    def test_health(self, client):
        health = client.get("/api/health").json()
        assert health["status"] == "healthy"
        assert health["checks"]["store"]["backend"] == "memory"

    def test_metrics_and_request_id(self, client):
        response = client.get("/", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"
        metrics_text = client.get("/metrics").text
        assert "topicless_api_requests_total" in metrics_text

    def test_unknown_live_collection(self, client):
        assert client.get("/api/live/credentials").status_code == 404
