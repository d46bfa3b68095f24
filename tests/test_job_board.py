"""Tests for the job board service."""

import pytest

from conftest import auth_for
from web3hire.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from web3hire.jobs.models import EmploymentType, Job, JobStatus
from web3hire.jobs.service import JobBoard


@pytest.fixture
def board(job_store, identities):
    return JobBoard(job_store, identities)


@pytest.fixture
def job_input():
    return {
        "title": "Senior Solidity Engineer",
        "description": "Audit and ship DeFi contracts",
        "salary": "$150k",
        "skills_required": ["Solidity", " Rust ", ""],
        "remote": True,
        "employment_type": EmploymentType.CONTRACT,
    }


async def post_job(board, employer, job_input):
    return (await board.create_job(auth_for(employer), job_input)).job


class TestJobModel:
    def test_rejects_unknown_status(self):
        with pytest.raises(ValueError, match="Invalid status"):
            Job(id="j1", employer_id="e1", title="t", description="d", salary="", status="Paused")

    def test_enum_values_are_stored_as_strings(self):
        job = Job(
            id="j1",
            employer_id="e1",
            title="t",
            description="d",
            salary="",
            status=JobStatus.CLOSED,
            employment_type=EmploymentType.INTERNSHIP,
        )
        assert job.status == "Closed"
        assert job.employment_type == "Internship"


class TestCreateJob:
    @pytest.mark.asyncio
    async def test_employer_posts_job(self, board, employer, job_input):
        view = await board.create_job(auth_for(employer), job_input)

        assert view.job.status == JobStatus.OPEN.value
        assert view.job.employer_id == employer.id
        assert view.job.skills_required == ["Solidity", "Rust"]
        assert view.job.employment_type == "Contract"
        assert view.employer.id == employer.id
        assert view.applicants == []

    @pytest.mark.asyncio
    async def test_candidate_cannot_post(self, board, candidate, job_input):
        with pytest.raises(ForbiddenError):
            await board.create_job(auth_for(candidate), job_input)


class TestUpdateAndClose:
    @pytest.mark.asyncio
    async def test_owner_updates(self, board, employer, job_input):
        job = await post_job(board, employer, job_input)

        view = await board.update_job(auth_for(employer), job.id, {"salary": "$170k", "applicants": ["x"]})

        assert view.job.salary == "$170k"
        assert view.job.applicants == []

    @pytest.mark.asyncio
    async def test_update_ignores_null_for_required_fields(self, board, employer, job_input):
        job = await post_job(board, employer, job_input)

        view = await board.update_job(auth_for(employer), job.id, {"salary": None, "remote": None})

        assert view.job.salary == job.salary
        assert view.job.remote == job.remote
        assert view.job.version == job.version

    @pytest.mark.asyncio
    async def test_non_owner_forbidden(self, board, employer, identities, job_input):
        job = await post_job(board, employer, job_input)
        other = identities.add(role="Employer")

        with pytest.raises(ForbiddenError):
            await board.update_job(auth_for(other), job.id, {"salary": "$1"})

    @pytest.mark.asyncio
    async def test_close_then_close_again(self, board, employer, job_input):
        job = await post_job(board, employer, job_input)

        view = await board.close_job(auth_for(employer), job.id)
        assert view.job.status == JobStatus.CLOSED.value

        with pytest.raises(InvalidStateError):
            await board.close_job(auth_for(employer), job.id)

    @pytest.mark.asyncio
    async def test_get_missing_job(self, board):
        with pytest.raises(NotFoundError):
            await board.get_job("job_missing")


class TestApply:
    @pytest.mark.asyncio
    async def test_candidate_applies(self, board, employer, candidate, job_input):
        job = await post_job(board, employer, job_input)

        view = await board.apply_to_job(auth_for(candidate), job.id)

        assert view.job.applicants == [candidate.id]
        assert view.applicants[0].name == "Alice"

    @pytest.mark.asyncio
    async def test_reapply_conflict(self, board, job_store, employer, candidate, job_input):
        job = await post_job(board, employer, job_input)
        await board.apply_to_job(auth_for(candidate), job.id)

        with pytest.raises(ConflictError):
            await board.apply_to_job(auth_for(candidate), job.id)

        assert (await job_store.get(job.id)).applicants == [candidate.id]

    @pytest.mark.asyncio
    async def test_employer_cannot_apply(self, board, employer, job_input):
        job = await post_job(board, employer, job_input)

        with pytest.raises(ForbiddenError):
            await board.apply_to_job(auth_for(employer), job.id)

    @pytest.mark.asyncio
    async def test_closed_job_rejects_applications(self, board, employer, candidate, job_input):
        job = await post_job(board, employer, job_input)
        await board.close_job(auth_for(employer), job.id)

        with pytest.raises(InvalidStateError):
            await board.apply_to_job(auth_for(candidate), job.id)

    @pytest.mark.asyncio
    async def test_concurrent_application_is_not_lost(
        self, board, job_store, employer, candidate, other_candidate, job_input
    ):
        job = await post_job(board, employer, job_input)
        job_store.before_update = lambda jid: job_store.bump(jid, applicants=[other_candidate.id])

        with pytest.raises(ConflictError):
            await board.apply_to_job(auth_for(candidate), job.id)

        view = await board.apply_to_job(auth_for(candidate), job.id)
        assert view.job.applicants == [other_candidate.id, candidate.id]


class TestSearchAndList:
    @pytest.mark.asyncio
    async def test_search_is_case_insensitive(self, board, employer, job_input):
        await post_job(board, employer, job_input)
        await post_job(board, employer, {**job_input, "title": "Designer", "description": "Figma"})

        results = await board.search_jobs("SOLIDITY")

        assert [v.job.title for v in results] == ["Senior Solidity Engineer"]

    @pytest.mark.asyncio
    async def test_list_by_employer(self, board, employer, identities, job_input):
        other = identities.add(role="Employer")
        mine = await post_job(board, employer, job_input)
        await post_job(board, other, job_input)

        views = await board.list_jobs(employer_id=employer.id)

        assert [v.job.id for v in views] == [mine.id]
