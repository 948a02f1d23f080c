"""Property-based tests for the application pipeline invariants."""

import asyncio

from hypothesis import HealthCheck, given, settings, strategies as st

from hirelink.core.errors import Conflict, DuplicateError, TerminalStateError
from hirelink.core.models import ApplicationStatus, RoundResult

PROPERTY_SETTINGS = dict(
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture, HealthCheck.too_slow],
)


@st.composite
def failing_round_strategy(draw):
    """A job size and the round at which the candidate fails."""
    rounds = draw(st.integers(min_value=1, max_value=5))
    fail_at = draw(st.integers(min_value=1, max_value=rounds))
    return rounds, fail_at


round_step_strategy = st.tuples(
    st.sampled_from(list(RoundResult)),
    st.booleans(),
)


class TestPipelineProperties:
    """Invariants that must hold for any sequence of recruiter actions."""

    @given(case=failing_round_strategy())
    @settings(max_examples=8, **PROPERTY_SETTINGS)
    def test_failed_always_rejects(self, marketplace_factory, case):
        rounds, fail_at = case

        async def run_test():
            async with marketplace_factory() as driver:
                setup = await driver.ready(rounds=rounds)
                pipeline = driver.marketplace.applications
                recruiter = setup.cast.recruiter
                application = await driver.shortlisted(setup)

                for round_number in range(1, fail_at):
                    application = await pipeline.update_round(
                        application.id, recruiter, round_number, RoundResult.PASSED, advance_to_next=True
                    )

                application = await pipeline.update_round(
                    application.id, recruiter, fail_at, RoundResult.FAILED
                )
                assert application.status == ApplicationStatus.REJECTED
                assert application.current_round == fail_at

        asyncio.run(run_test())

    @given(rounds=st.integers(min_value=0, max_value=5))
    @settings(max_examples=6, **PROPERTY_SETTINGS)
    def test_passing_the_final_round_hires(self, marketplace_factory, rounds):
        async def run_test():
            async with marketplace_factory() as driver:
                setup = await driver.ready(rounds=rounds)
                pipeline = driver.marketplace.applications
                recruiter = setup.cast.recruiter
                application = await driver.shortlisted(setup)

                while application.status != ApplicationStatus.HIRED:
                    application = await pipeline.update_round(
                        application.id, recruiter, application.current_round,
                        RoundResult.PASSED, advance_to_next=True,
                    )

                assert application.current_round == rounds
                assert len(application.round_updates) == max(rounds, 1)

        asyncio.run(run_test())

    @given(
        rounds=st.integers(min_value=1, max_value=4),
        steps=st.lists(round_step_strategy, min_size=1, max_size=8),
    )
    @settings(max_examples=10, **PROPERTY_SETTINGS)
    def test_current_round_stays_within_job_rounds(self, marketplace_factory, rounds, steps):
        async def run_test():
            async with marketplace_factory() as driver:
                setup = await driver.ready(rounds=rounds)
                pipeline = driver.marketplace.applications
                recruiter = setup.cast.recruiter
                application = await driver.shortlisted(setup)
                recorded = 0

                for result, advance in steps:
                    try:
                        application = await pipeline.update_round(
                            application.id, recruiter, application.current_round, result,
                            advance_to_next=advance,
                        )
                        recorded += 1
                    except TerminalStateError:
                        break

                    assert 1 <= application.current_round <= rounds
                    assert len(application.round_updates) == recorded
                    assert [u.sequence for u in application.round_updates] == list(range(1, recorded + 1))

        asyncio.run(run_test())

    @given(attempts=st.integers(min_value=2, max_value=4))
    @settings(max_examples=4, **PROPERTY_SETTINGS)
    def test_at_most_one_application_per_pair(self, marketplace_factory, attempts):
        async def run_test():
            async with marketplace_factory() as driver:
                setup = await driver.ready()

                results = await asyncio.gather(
                    *[driver.apply(setup) for _ in range(attempts)], return_exceptions=True
                )

                assert sum(1 for r in results if not isinstance(r, Exception)) == 1
                assert all(isinstance(r, DuplicateError) for r in results if isinstance(r, Exception))
                listed = await driver.marketplace.applications.list_for_jobseeker(setup.cast.jobseeker)
                assert len(listed) == 1

        asyncio.run(run_test())

    @given(racers=st.integers(min_value=2, max_value=3))
    @settings(max_examples=3, **PROPERTY_SETTINGS)
    def test_racing_round_updates_record_once(self, marketplace_factory, racers):
        async def run_test():
            async with marketplace_factory() as driver:
                setup = await driver.ready(rounds=3)
                pipeline = driver.marketplace.applications
                application = await driver.shortlisted(setup)

                results = await asyncio.gather(
                    *[
                        pipeline.update_round(
                            application.id, setup.cast.recruiter, 1, RoundResult.PASSED, advance_to_next=True
                        )
                        for _ in range(racers)
                    ],
                    return_exceptions=True,
                )

                assert sum(1 for r in results if isinstance(r, Conflict)) == racers - 1
                final = await pipeline.get(application.id, setup.cast.recruiter)
                assert final.current_round == 2
                assert len(final.round_updates) == 1

        asyncio.run(run_test())
