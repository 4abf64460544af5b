"""Tests for lines and sections API endpoints."""

import uuid

import pytest
from httpx import AsyncClient

from subway.core.config import settings
from subway.models.line import Line
from subway.models.station import Station

LINES_URL = f"{settings.API_V1_PREFIX}/lines"


def station_names(line_json: dict) -> list[str]:
    return [station["name"] for station in line_json["stations"]]


class TestLinesAPI:
    """Test cases for line endpoints."""

    @pytest.mark.asyncio
    async def test_create_line(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        stations: dict[str, Station],
    ) -> None:
        """Test creating a line with its first section."""
        payload = {
            "name": "Line 2",
            "color": "bg-green-600",
            "up_station_id": str(stations["A"].id),
            "down_station_id": str(stations["B"].id),
            "distance": 10,
        }

        response = await async_client.post(LINES_URL, json=payload, headers=auth_headers_for_member)

        assert response.status_code == 201
        data = response.json()
        assert station_names(data) == ["A", "B"]
        assert data["total_distance"] == 10
        assert response.headers["location"] == f"{LINES_URL}/{data['id']}"

    @pytest.mark.asyncio
    async def test_create_line_without_sections(
        self, async_client: AsyncClient, auth_headers_for_member: dict[str, str]
    ) -> None:
        """Test a line can be created empty and read back."""
        response = await async_client.post(
            LINES_URL, json={"name": "Empty", "color": "grey"}, headers=auth_headers_for_member
        )

        assert response.status_code == 201
        data = response.json()
        assert data["stations"] == []
        assert data["sections"] == []
        assert data["total_distance"] == 0

        response = await async_client.get(f"{LINES_URL}/{data['id']}")

        assert response.status_code == 200
        assert response.json()["stations"] == []

    @pytest.mark.asyncio
    async def test_create_line_with_partial_section(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        stations: dict[str, Station],
    ) -> None:
        """Test the first section's fields must come together."""
        payload = {"name": "Line 2", "color": "green", "up_station_id": str(stations["A"].id)}

        response = await async_client.post(LINES_URL, json=payload, headers=auth_headers_for_member)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_create_line_duplicate_name(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        line_a_to_c: Line,
    ) -> None:
        """Test 409 for a taken line name."""
        response = await async_client.post(
            LINES_URL, json={"name": "Line 1", "color": "blue"}, headers=auth_headers_for_member
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_list_lines(self, async_client: AsyncClient, line_a_to_c: Line) -> None:
        """Test the summary list is public."""
        response = await async_client.get(LINES_URL)

        assert response.status_code == 200
        assert response.json() == [
            {
                "id": str(line_a_to_c.id),
                "name": "Line 1",
                "color": "bg-red-600",
                "station_count": 2,
                "total_distance": 10,
            }
        ]

    @pytest.mark.asyncio
    async def test_get_missing_line(self, async_client: AsyncClient) -> None:
        """Test 404 for an unknown line."""
        response = await async_client.get(f"{LINES_URL}/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"] == "Line not found."

    @pytest.mark.asyncio
    async def test_update_line(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        line_a_to_c: Line,
    ) -> None:
        """Test renaming a line keeps its stations."""
        response = await async_client.patch(
            f"{LINES_URL}/{line_a_to_c.id}", json={"name": "Line 1 Express"}, headers=auth_headers_for_member
        )

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Line 1 Express"
        assert data["color"] == "bg-red-600"
        assert station_names(data) == ["A", "C"]

    @pytest.mark.asyncio
    async def test_delete_line(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        line_a_to_c: Line,
    ) -> None:
        """Test deleting a line."""
        line_id = line_a_to_c.id

        response = await async_client.delete(f"{LINES_URL}/{line_id}", headers=auth_headers_for_member)

        assert response.status_code == 204
        assert (await async_client.get(f"{LINES_URL}/{line_id}")).status_code == 404


class TestSectionsAPI:
    """Test cases for section endpoints."""

    @pytest.mark.asyncio
    async def test_add_section_splits_line(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        stations: dict[str, Station],
        line_a_to_c: Line,
    ) -> None:
        """Test A->C:10 plus A->B:4 gives A, B, C with 4 and 6."""
        line_id = line_a_to_c.id
        payload = {"up_station_id": str(stations["A"].id), "down_station_id": str(stations["B"].id), "distance": 4}

        response = await async_client.post(
            f"{LINES_URL}/{line_id}/sections", json=payload, headers=auth_headers_for_member
        )

        assert response.status_code == 201
        section = response.json()
        assert section["up_station"]["name"] == "A"
        assert section["down_station"]["name"] == "B"
        assert section["distance"] == 4

        line = (await async_client.get(f"{LINES_URL}/{line_id}")).json()
        assert station_names(line) == ["A", "B", "C"]
        assert [s["distance"] for s in line["sections"]] == [4, 6]
        assert line["total_distance"] == 10

    @pytest.mark.asyncio
    async def test_add_disconnected_section(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        stations: dict[str, Station],
        line_a_to_c: Line,
    ) -> None:
        """Test 400 with the chain's message for a section that does not attach."""
        payload = {"up_station_id": str(stations["B"].id), "down_station_id": str(stations["D"].id), "distance": 3}

        response = await async_client.post(
            f"{LINES_URL}/{line_a_to_c.id}/sections", json=payload, headers=auth_headers_for_member
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Section does not connect to any station on this line."

    @pytest.mark.asyncio
    async def test_add_section_same_stations(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        stations: dict[str, Station],
        line_a_to_c: Line,
    ) -> None:
        """Test 422 when up and down are the same station."""
        station_id = str(stations["A"].id)
        payload = {"up_station_id": station_id, "down_station_id": station_id, "distance": 3}

        response = await async_client.post(
            f"{LINES_URL}/{line_a_to_c.id}/sections", json=payload, headers=auth_headers_for_member
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_add_section_requires_auth(
        self, async_client: AsyncClient, stations: dict[str, Station], line_a_to_c: Line
    ) -> None:
        """Test section writes need a bearer token."""
        payload = {"up_station_id": str(stations["A"].id), "down_station_id": str(stations["B"].id), "distance": 4}

        response = await async_client.post(f"{LINES_URL}/{line_a_to_c.id}/sections", json=payload)

        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_remove_station(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        stations: dict[str, Station],
        line_a_to_c: Line,
    ) -> None:
        """Test removing an interior station merges its sections."""
        line_id = line_a_to_c.id
        payload = {"up_station_id": str(stations["A"].id), "down_station_id": str(stations["B"].id), "distance": 4}
        await async_client.post(f"{LINES_URL}/{line_id}/sections", json=payload, headers=auth_headers_for_member)

        response = await async_client.delete(
            f"{LINES_URL}/{line_id}/sections",
            params={"station_id": str(stations["B"].id)},
            headers=auth_headers_for_member,
        )

        assert response.status_code == 204
        line = (await async_client.get(f"{LINES_URL}/{line_id}")).json()
        assert station_names(line) == ["A", "C"]
        assert line["total_distance"] == 10

    @pytest.mark.asyncio
    async def test_remove_station_from_single_section_line(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        stations: dict[str, Station],
        line_a_to_c: Line,
    ) -> None:
        """Test 400 when the line would lose its last section."""
        response = await async_client.delete(
            f"{LINES_URL}/{line_a_to_c.id}/sections",
            params={"station_id": str(stations["C"].id)},
            headers=auth_headers_for_member,
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_remove_station_requires_station_id(
        self,
        async_client: AsyncClient,
        auth_headers_for_member: dict[str, str],
        line_a_to_c: Line,
    ) -> None:
        """Test 422 without the station_id query parameter."""
        response = await async_client.delete(f"{LINES_URL}/{line_a_to_c.id}/sections", headers=auth_headers_for_member)

        assert response.status_code == 422
