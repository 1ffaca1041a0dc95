# WatchNest test scripts
from __future__ import annotations

import pytest
import requests
import responses

from providers.metadata._meta_TMDB import API_BASE, TmdbProvider, get_year, movie_to_item, poster_url, tv_to_item
from wn_platform.media import Movie, Series, Status


def _prov(api_key: str = "k-123") -> TmdbProvider:
    return TmdbProvider(lambda: {"tmdb": {"api_key": api_key, "language": "en-US", "ttl_hours": 1}})


def test_get_year_and_poster_url():
    assert get_year("1999-03-31") == "1999"
    assert get_year("") == "N/A"
    assert get_year(None) == "N/A"
    assert poster_url("/abc.jpg") == "https://image.tmdb.org/t/p/w342/abc.jpg"
    assert poster_url(None) is None


def test_converters_build_typed_items():
    m = movie_to_item(
        {"id": 603, "title": "The Matrix", "release_date": "1999-03-31", "vote_average": 8.2,
         "poster_path": "/m.jpg", "runtime": 136},
        Status.WANT,
    )
    assert isinstance(m, Movie)
    assert (m.external_id, m.release_year, m.runtime, m.status) == (603, "1999", 136, Status.WANT)
    assert m.added_at.endswith("Z")

    s = tv_to_item(
        {"id": 1399, "name": "Game of Thrones", "first_air_date": "", "number_of_seasons": 8},
        Status.WATCHING,
    )
    assert isinstance(s, Series)
    assert (s.title, s.release_year, s.number_of_seasons, s.progress) == ("Game of Thrones", "N/A", 8, None)


def test_search_hits_kind_endpoint_and_caches():
    p = _prov()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{API_BASE}/search/tv", json={"page": 1, "results": [{"id": 1399}]}, status=200)
        first = p.search("thrones", "show")
        second = p.search("thrones", "tv")
        assert len(rsps.calls) == 1
        url = rsps.calls[0].request.url
        assert "api_key=k-123" in url and "query=thrones" in url and "language=en-US" in url
    assert first == second == {"page": 1, "results": [{"id": 1399}]}


def test_details_backs_off_on_429():
    p = _prov()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{API_BASE}/movie/550", json={}, status=429, headers={"Retry-After": "0"})
        rsps.add(responses.GET, f"{API_BASE}/movie/550", json={"id": 550, "title": "Fight Club"}, status=200)
        data = p.details(550, "movie")
        assert len(rsps.calls) == 2
    assert data["title"] == "Fight Club"


def test_errors_surface():
    with pytest.raises(RuntimeError):
        _prov(api_key="").details(1, "movie")
    with pytest.raises(ValueError):
        _prov().details(1, "episode")

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{API_BASE}/tv/404", json={"status_message": "not found"}, status=404)
        with pytest.raises(requests.HTTPError):
            _prov().details(404, "tv")


def test_to_item_fetches_details():
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{API_BASE}/tv/1399",
            json={"id": 1399, "name": "Game of Thrones", "first_air_date": "2011-04-17", "number_of_episodes": 73},
            status=200,
        )
        it = _prov().to_item(1399, "tv", Status.COMPLETED)
    assert isinstance(it, Series)
    assert (it.release_year, it.number_of_episodes, it.status) == ("2011", 73, Status.COMPLETED)
