"""Tests for evaluating DCQL queries against held credentials."""

import pytest

from oid4vp_holder.dcql import DCQLQueryEvaluator, satisfies_meta, select_responses
from oid4vp_holder.error import MalformedRequest, NoMatchForQuery
from oid4vp_holder.models.credential import MdocCredential, SdJwtVcCredential
from oid4vp_holder.models.dcql_query import DCQLQuery

from .conftest import MDL_DOCTYPE, PID_VCT


def pid_query(*claims, claim_sets=None, vct_values=(PID_VCT,)):
    credential = {
        "id": "pid",
        "format": "dc+sd-jwt",
        "meta": {"vct_values": list(vct_values)},
        "claims": list(claims),
    }
    if claim_sets is not None:
        credential["claim_sets"] = claim_sets
    return {"credentials": [credential]}


def mdl_query(*claims, claim_sets=None, doctype=MDL_DOCTYPE):
    credential = {
        "id": "mdl",
        "format": "mso_mdoc",
        "meta": {"doctype_value": doctype},
        "claims": list(claims),
    }
    if claim_sets is not None:
        credential["claim_sets"] = claim_sets
    return {"credentials": [credential]}


def summarize(responses):
    """Reduce responses to (query id, [(credential id, [(path, value)])])."""
    return [
        (
            response.credential_query_id,
            [
                (
                    match.credential.credential_id,
                    [(claim.path, value) for claim, value in match.claim_values],
                )
                for match in response.matches
            ],
        )
        for response in responses
    ]


class TestSingleCredentialQuery:
    """One credential query, no credential sets."""

    @pytest.mark.asyncio
    async def test_two_claims_one_credential(self, store):
        evaluator = DCQLQueryEvaluator.compile(
            pid_query({"path": ["given_name"]}, {"path": ["address", "street_address"]})
        )
        responses = await evaluator.execute(store)

        assert summarize(responses) == [
            (
                "pid",
                [
                    (
                        "pid-erika",
                        [
                            (["given_name"], "Erika"),
                            (["address", "street_address"], "Sample Street 123"),
                        ],
                    )
                ],
            )
        ]
        assert responses[0].credential_set_query is None

    @pytest.mark.asyncio
    async def test_mdoc_query(self, store):
        evaluator = DCQLQueryEvaluator.compile(
            mdl_query(
                {"path": ["org.iso.18013.5.1", "family_name"], "intent_to_retain": True},
                {"path": ["org.iso.18013.5.1", "age_over_21"], "values": [True]},
            )
        )
        responses = await evaluator.execute(store)

        assert summarize(responses) == [
            (
                "mdl",
                [
                    (
                        "mdl-erika",
                        [
                            (["org.iso.18013.5.1", "family_name"], "Mustermann"),
                            (["org.iso.18013.5.1", "age_over_21"], True),
                        ],
                    )
                ],
            )
        ]

    @pytest.mark.asyncio
    async def test_claim_sets_fall_back_to_second_alternative(self, store):
        evaluator = DCQLQueryEvaluator.compile(
            pid_query(
                {"id": "a", "path": ["given_name"]},
                {"id": "b", "path": ["birth_date"]},
                {"id": "c", "path": ["family_name"]},
                claim_sets=[["a", "b"], ["a", "c"]],
            )
        )
        responses = await evaluator.execute(store)

        assert summarize(responses) == [
            (
                "pid",
                [
                    (
                        "pid-erika",
                        [(["given_name"], "Erika"), (["family_name"], "Mustermann")],
                    )
                ],
            )
        ]

    @pytest.mark.asyncio
    async def test_empty_claim_sets_require_every_claim(self, store):
        evaluator = DCQLQueryEvaluator.compile(
            pid_query(
                {"id": "a", "path": ["given_name"]},
                {"id": "c", "path": ["family_name"]},
                claim_sets=[],
            )
        )
        responses = await evaluator.execute(store)

        assert summarize(responses) == [
            (
                "pid",
                [
                    (
                        "pid-erika",
                        [(["given_name"], "Erika"), (["family_name"], "Mustermann")],
                    )
                ],
            )
        ]

    @pytest.mark.asyncio
    async def test_empty_credential_sets_select_every_query(self, store):
        query = pid_query({"path": ["given_name"]})
        query["credential_sets"] = []
        responses = await DCQLQueryEvaluator.compile(query).execute(store)

        assert summarize(responses) == [
            ("pid", [("pid-erika", [(["given_name"], "Erika")])])
        ]
        assert responses[0].credential_set_query is None

    @pytest.mark.asyncio
    async def test_every_matching_credential_in_store_order(
        self, store_factory, pid_erika
    ):
        pid_max = SdJwtVcCredential(
            credential_id="pid-max",
            vct=PID_VCT,
            claims={"given_name": "Max", "family_name": "Mustermann"},
        )
        other_vct = SdJwtVcCredential(
            credential_id="pid-other",
            vct="https://othercredentials.example/pid",
            claims={"given_name": "Erika", "family_name": "Mustermann"},
        )
        store = store_factory([pid_max, other_vct, pid_erika])
        evaluator = DCQLQueryEvaluator.compile(pid_query({"path": ["family_name"]}))

        responses = await evaluator.execute(store)

        assert [m.credential.credential_id for m in responses[0].matches] == [
            "pid-max",
            "pid-erika",
        ]

    @pytest.mark.asyncio
    async def test_vct_values_any_of(self, store_factory):
        other = SdJwtVcCredential(
            credential_id="pid-other",
            vct="https://othercredentials.example/pid",
            claims={"given_name": "Erika"},
        )
        evaluator = DCQLQueryEvaluator.compile(
            pid_query(
                {"path": ["given_name"]},
                vct_values=[PID_VCT, "https://othercredentials.example/pid"],
            )
        )
        responses = await evaluator.execute(store_factory([other]))
        assert summarize(responses) == [
            ("pid", [("pid-other", [(["given_name"], "Erika")])])
        ]

    @pytest.mark.asyncio
    async def test_no_match_raises(self, store):
        evaluator = DCQLQueryEvaluator.compile(
            pid_query({"path": ["given_name"], "values": ["Max"]})
        )
        with pytest.raises(NoMatchForQuery) as exc_info:
            await evaluator.execute(store)
        assert exc_info.value.credential_query_id == "pid"

    @pytest.mark.asyncio
    async def test_wrong_doctype_raises(self, store):
        evaluator = DCQLQueryEvaluator.compile(
            mdl_query(
                {"path": ["org.iso.18013.5.1", "family_name"]},
                doctype="eu.europa.ec.eudi.pid.1",
            )
        )
        with pytest.raises(NoMatchForQuery):
            await evaluator.execute(store)

    @pytest.mark.asyncio
    async def test_first_empty_query_is_reported(self, store):
        query = {
            "credentials": [
                pid_query({"path": ["given_name"]})["credentials"][0],
                {
                    "id": "photo_card",
                    "format": "mso_mdoc",
                    "meta": {"doctype_value": "org.iso.23220.photoid.1"},
                    "claims": [{"path": ["org.iso.23220.1", "family_name"]}],
                },
                {
                    "id": "ldp",
                    "format": "ldp_vc",
                    "claims": [{"path": ["credentialSubject", "name"]}],
                },
            ]
        }
        with pytest.raises(NoMatchForQuery) as exc_info:
            await DCQLQueryEvaluator.compile(query).execute(store)
        assert exc_info.value.credential_query_id == "photo_card"

    @pytest.mark.asyncio
    async def test_queries_consult_store_once_each(self, store):
        query = pid_query({"path": ["given_name"]})
        query["credentials"].append(
            mdl_query({"path": ["org.iso.18013.5.1", "given_name"]})["credentials"][0]
        )
        responses = await DCQLQueryEvaluator.compile(query).execute(store)

        assert [response.credential_query_id for response in responses] == [
            "pid",
            "mdl",
        ]
        assert store.list_calls == 2

    @pytest.mark.asyncio
    async def test_vanished_credential_is_skipped(self, store, pid_erika):
        class VanishingStore(type(store)):
            async def list_credential_ids(self):
                return ["gone"] + await super().list_credential_ids()

        evaluator = DCQLQueryEvaluator.compile(pid_query({"path": ["given_name"]}))
        responses = await evaluator.execute(VanishingStore([pid_erika]))
        assert len(responses[0].matches) == 1

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store):
        class BrokenStore(type(store)):
            async def get_credential(self, credential_id):
                raise ConnectionError("store unavailable")

        evaluator = DCQLQueryEvaluator.compile(pid_query({"path": ["given_name"]}))
        with pytest.raises(ConnectionError):
            await evaluator.execute(BrokenStore(list(store.credentials.values())))


def test_compile_accepts_model_and_rejects_garbage(store):
    query = DCQLQuery.from_json(pid_query({"path": ["given_name"]}))
    assert DCQLQueryEvaluator.compile(query).query is query
    with pytest.raises(MalformedRequest):
        DCQLQueryEvaluator.compile({"credentials": []})


def test_satisfies_meta(mdl_erika, pid_erika):
    mdl = DCQLQuery.from_json(mdl_query({"path": ["a", "b"]})).credentials[0]
    pid = DCQLQuery.from_json(pid_query({"path": ["a"]})).credentials[0]

    assert satisfies_meta(mdl, mdl_erika)
    assert not satisfies_meta(mdl, pid_erika)
    assert satisfies_meta(pid, pid_erika)
    assert not satisfies_meta(pid, mdl_erika)

    other_doctype = MdocCredential(credential_id="x", doctype="org.iso.23220.photoid.1")
    assert not satisfies_meta(mdl, other_doctype)
    with pytest.raises(TypeError):
        satisfies_meta(mdl, object())


def test_select_responses_without_sets_returns_all():
    query = DCQLQuery.from_json(pid_query({"path": ["given_name"]}))
    assert select_responses(query, []) == []
