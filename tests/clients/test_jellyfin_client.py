"""Tests for Jellyfin client functionality."""

import httpx
import pytest
import respx

from jellyfin_tools.clients.jellyfin import JellyfinClient, jellyfin_client, movie_web_url
from tests.fixtures.jellyfin_responses import (
    EMPTY_ITEMS_RESPONSE,
    FAVORITE_MOVIES_RESPONSE,
    FAVORITE_PEOPLE_RESPONSE,
    LIBRARY_MOVIES_RESPONSE,
    MOVIE_SEARCH_RESPONSE,
    SYSTEM_INFO_RESPONSE,
    USERS_RESPONSE,
)

BASE_URL = "http://localhost:8096"
USER_ID = "a1b2c3d4e5f60718293a4b5c6d7e8f90"


@pytest.fixture
def client():
    """Create a JellyfinClient with no pacing delay and no read retries."""
    return JellyfinClient(
        server_url=BASE_URL,
        api_token="test-token",
        timeout=10.0,
        favorite_delay=0,
        max_attempts=1,
    )


class TestJellyfinClient:
    """Test cases for JellyfinClient."""

    @pytest.mark.asyncio
    async def test_client_initialization(self):
        """Test client is properly initialized with headers."""
        client = JellyfinClient(server_url=BASE_URL + "/", api_token="secret", timeout=15.0)

        assert client.server_url == BASE_URL
        assert client._client.headers["X-Emby-Token"] == "secret"
        assert client._client.headers["Accept"] == "application/json"
        assert client._client.headers["User-Agent"].startswith("jellyfin-tools/")
        assert client._client.timeout.read == 15.0

        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_success(self, client):
        """Test successful connection check."""
        route = respx.get(f"{BASE_URL}/System/Info").mock(
            return_value=httpx.Response(200, json=SYSTEM_INFO_RESPONSE)
        )

        assert await client.test_connection() is True
        assert route.calls[0].request.headers["X-Emby-Token"] == "test-token"

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_unauthorized(self, client):
        """Test connection check converts HTTP errors into False."""
        respx.get(f"{BASE_URL}/System/Info").mock(return_value=httpx.Response(401))

        assert await client.test_connection() is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_connection_transport_error(self, client):
        """Test connection check converts transport errors into False."""
        respx.get(f"{BASE_URL}/System/Info").mock(side_effect=httpx.ConnectError("refused"))

        assert await client.test_connection() is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_read_retries_transient_failures(self):
        """Test that server errors on reads are retried before succeeding."""
        client = JellyfinClient(BASE_URL, "test-token", max_attempts=2)
        route = respx.get(f"{BASE_URL}/Users").mock(
            side_effect=[httpx.Response(503), httpx.Response(200, json=USERS_RESPONSE)]
        )

        users = await client.list_users()

        assert route.call_count == 2
        assert [user.name for user in users] == ["alice", "bob"]
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_read_does_not_retry_client_errors(self):
        """Test that 4xx responses fail immediately."""
        client = JellyfinClient(BASE_URL, "test-token", max_attempts=3)
        route = respx.get(f"{BASE_URL}/Users").mock(return_value=httpx.Response(404))

        assert await client.list_users() == []
        assert route.call_count == 1
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_users(self, client):
        """Test listing users parses the plain array payload."""
        respx.get(f"{BASE_URL}/Users").mock(return_value=httpx.Response(200, json=USERS_RESPONSE))

        users = await client.list_users()

        assert len(users) == 2
        assert users[0].id == USER_ID
        assert users[0].has_password is True

    @pytest.mark.asyncio
    @respx.mock(assert_all_called=False)
    async def test_resolve_user_id_prefers_explicit_value(self, client):
        """Test that an explicit user id skips the users call."""
        route = respx.get(f"{BASE_URL}/Users")

        assert await client.resolve_user_id("explicit") == "explicit"
        assert route.call_count == 0

    @pytest.mark.asyncio
    @respx.mock
    async def test_resolve_user_id_falls_back_to_first_user(self, client):
        """Test user id resolution from the server's user list."""
        respx.get(f"{BASE_URL}/Users").mock(return_value=httpx.Response(200, json=USERS_RESPONSE))

        assert await client.resolve_user_id(None) == USER_ID

    @pytest.mark.asyncio
    @respx.mock
    async def test_resolve_user_id_without_users(self, client):
        """Test user id resolution when the server reports nobody."""
        respx.get(f"{BASE_URL}/Users").mock(return_value=httpx.Response(200, json=[]))

        assert await client.resolve_user_id(None) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_favorite_movies(self, client):
        """Test favorite movies request parameters and parsing."""
        route = respx.get(f"{BASE_URL}/Users/{USER_ID}/Items").mock(
            return_value=httpx.Response(200, json=FAVORITE_MOVIES_RESPONSE)
        )

        movies = await client.list_favorite_movies(USER_ID)

        params = route.calls[0].request.url.params
        assert params["Filters"] == "IsFavorite"
        assert params["IncludeItemTypes"] == "Movie"
        assert params["Recursive"] == "true"
        assert [movie.name for movie in movies] == ["Inception", "Spirited Away"]
        assert movies[0].genres == ["Action", "Science Fiction"]
        assert movies[0].people[0].name == "Leonardo DiCaprio"
        assert movies[0].user_data is not None and movies[0].user_data.is_favorite is True

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_all_movies_requests_technical_fields(self, client):
        """Test that the library listing asks for media sources and dimensions."""
        route = respx.get(f"{BASE_URL}/Users/{USER_ID}/Items").mock(
            return_value=httpx.Response(200, json=LIBRARY_MOVIES_RESPONSE)
        )

        movies = await client.list_all_movies(USER_ID)

        fields = route.calls[0].request.url.params["Fields"]
        assert "MediaSources" in fields
        assert "Width" in fields
        assert "Filters" not in route.calls[0].request.url.params
        assert len(movies) == 3
        source = movies[1].media_sources[0]
        assert source.size == 2147483648
        assert source.media_streams[0].width == 1280

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_all_movies_server_error_returns_empty(self, client):
        """Test that a failing library call yields an empty list."""
        respx.get(f"{BASE_URL}/Users/{USER_ID}/Items").mock(return_value=httpx.Response(500))

        assert await client.list_all_movies(USER_ID) == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_all_movies_invalid_json_returns_empty(self, client):
        """Test that a non-JSON body yields an empty list."""
        respx.get(f"{BASE_URL}/Users/{USER_ID}/Items").mock(
            return_value=httpx.Response(200, text="<html>proxy error</html>")
        )

        assert await client.list_all_movies(USER_ID) == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_favorite_people(self, client):
        """Test favorite people request parameters and parsing."""
        route = respx.get(f"{BASE_URL}/Persons").mock(
            return_value=httpx.Response(200, json=FAVORITE_PEOPLE_RESPONSE)
        )

        people = await client.list_favorite_people(USER_ID)

        params = route.calls[0].request.url.params
        assert params["IsFavorite"] == "true"
        assert params["userId"] == USER_ID
        assert [person.name for person in people] == ["Christopher Nolan"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_list_favorite_people_empty(self, client):
        """Test an empty people listing."""
        respx.get(f"{BASE_URL}/Persons").mock(
            return_value=httpx.Response(200, json=EMPTY_ITEMS_RESPONSE)
        )

        assert await client.list_favorite_people(USER_ID) == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_set_movie_favorite_posts(self, client):
        """Test that setting a favorite POSTs to FavoriteItems."""
        route = respx.post(f"{BASE_URL}/Users/{USER_ID}/FavoriteItems/movie-inception").mock(
            return_value=httpx.Response(200, json={"IsFavorite": True})
        )

        assert await client.set_movie_favorite(USER_ID, "movie-inception", True) is True
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_clear_person_favorite_deletes(self, client):
        """Test that clearing a favorite sends DELETE."""
        route = respx.delete(f"{BASE_URL}/Users/{USER_ID}/FavoriteItems/p-nolan").mock(
            return_value=httpx.Response(200, json={"IsFavorite": False})
        )

        assert await client.set_person_favorite(USER_ID, "p-nolan", False) is True
        assert route.call_count == 1

    @pytest.mark.asyncio
    @respx.mock
    async def test_set_favorite_unknown_item_returns_false(self, client):
        """Test that a 404 on an unknown id is reported as False."""
        respx.post(f"{BASE_URL}/Users/{USER_ID}/FavoriteItems/foreign-id").mock(
            return_value=httpx.Response(404)
        )

        assert await client.set_movie_favorite(USER_ID, "foreign-id", True) is False

    @pytest.mark.asyncio
    @respx.mock
    async def test_set_favorite_paces_every_call(self, monkeypatch):
        """Test that each toggle sleeps for the configured delay, even on failure."""
        delays: list[float] = []

        async def fake_sleep(seconds: float) -> None:
            delays.append(seconds)

        monkeypatch.setattr("jellyfin_tools.clients.jellyfin.asyncio.sleep", fake_sleep)
        client = JellyfinClient(BASE_URL, "test-token", favorite_delay=0.1)
        respx.post(f"{BASE_URL}/Users/{USER_ID}/FavoriteItems/ok").mock(
            return_value=httpx.Response(200, json={})
        )
        respx.post(f"{BASE_URL}/Users/{USER_ID}/FavoriteItems/missing").mock(
            return_value=httpx.Response(404)
        )

        await client.set_movie_favorite(USER_ID, "ok", True)
        await client.set_movie_favorite(USER_ID, "missing", True)

        assert delays == [0.1, 0.1]
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_movies_by_name(self, client):
        """Test movie search sends the search term."""
        route = respx.get(f"{BASE_URL}/Items").mock(
            return_value=httpx.Response(200, json=MOVIE_SEARCH_RESPONSE)
        )

        results = await client.search_movies_by_name("Inception")

        params = route.calls[0].request.url.params
        assert params["searchTerm"] == "Inception"
        assert params["IncludeItemTypes"] == "Movie"
        assert [movie.id for movie in results] == ["remote-inception", "remote-cobol"]

    @pytest.mark.asyncio
    @respx.mock
    async def test_search_people_by_name_failure(self, client):
        """Test people search converts errors into an empty list."""
        route = respx.get(f"{BASE_URL}/Items").mock(return_value=httpx.Response(404))

        assert await client.search_people_by_name("Nobody") == []
        assert route.calls[0].request.url.params["IncludeItemTypes"] == "Person"

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self):
        """Test the async context manager helper closes the HTTP client."""
        async with jellyfin_client(BASE_URL, "test-token") as client:
            assert isinstance(client, JellyfinClient)

        assert client._client.is_closed

    @pytest.mark.asyncio
    async def test_client_closes_on_exit(self):
        """Test that leaving ``async with`` closes the HTTP client."""
        async with JellyfinClient(BASE_URL, "test-token") as client:
            assert not client._client.is_closed

        assert client._client.is_closed


def test_movie_web_url():
    assert (
        movie_web_url("http://localhost:8096/", "abc")
        == "http://localhost:8096/web/index.html#!/details?id=abc"
    )
