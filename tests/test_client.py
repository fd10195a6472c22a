"""End-to-end tests of the client protocol driver against the mock server."""

import logging

import pytest
import torch

from mocks import MockHEBackend, MockServerTransport
from slotgemm import ClientProtocolDriver, ClientReport
from slotgemm.utils import matmul_mod, randomize


def _driver(ctx, jobs, noisy=False, count_override=None):
    backend = MockHEBackend(ctx, noisy=noisy)
    transport = MockServerTransport(ctx, jobs, count_override=count_override)
    return ClientProtocolDriver(backend, transport), backend, transport


def _operands(p, n1, n2, n3, seed=7):
    gen = torch.Generator().manual_seed(seed)
    return randomize(n1, n2, p, generator=gen), randomize(n2, n3, p, generator=gen)


class TestPlay:

    @pytest.mark.parametrize("shape", [(10, 7, 5), (8, 4, 1), (3, 13, 2), (17, 9, 3)])
    def test_matrix_product(self, small_ctx, shape):
        n1, n2, n3 = shape
        a, b = _operands(small_ctx.p, n1, n2, n3)
        driver, _, _ = _driver(small_ctx, [(n1, b)])

        computed, report = driver.play(a, b)

        assert torch.equal(computed, matmul_mod(a, b, small_ctx.p))
        assert report.verified is True
        assert report.decryption_ok is True

    def test_vector_product(self, small_ctx):
        a, b = _operands(small_ctx.p, 1, 9, 11)
        driver, _, transport = _driver(small_ctx, [(1, b)])

        computed, report = driver.play(a, b)

        assert computed.shape == (1, 11)
        assert torch.equal(computed, matmul_mod(a, b, small_ctx.p))
        assert report.ciphertexts_sent == 3
        assert report.ciphertexts_received == 2

    def test_linear_slots(self, linear_ctx):
        a, b = _operands(linear_ctx.p, 5, 3, 4)
        driver, _, _ = _driver(linear_ctx, [(5, b)])

        computed, report = driver.play(a, b)

        assert report.verified is True

    def test_report_counters(self, small_ctx):
        a, b = _operands(small_ctx.p, 10, 10, 3)
        driver, backend, transport = _driver(small_ctx, [(10, b)])

        _, report = driver.play(a, b)

        assert isinstance(report, ClientReport)
        assert (report.n1, report.n2, report.n3) == (10, 10, 3)
        assert report.ciphertexts_sent == 6
        assert backend.encrypted == 6
        assert report.ciphertexts_received == 6
        assert report.server_eval_time == 0.25
        assert report.total_time >= report.pack_time
        assert transport.keys == ["mock-evaluation-key"]
        assert "10x10 @ 10x3" in str(report)

    def test_without_b(self, small_ctx):
        a, b = _operands(small_ctx.p, 4, 4, 2)
        driver, _, _ = _driver(small_ctx, [(4, b)])

        computed, report = driver.play(a, n3=2)

        assert report.verified is None
        assert torch.equal(computed, matmul_mod(a, b, small_ctx.p))

    def test_requires_output_width(self, small_ctx):
        driver, _, _ = _driver(small_ctx, [])

        with pytest.raises(ValueError, match="n3"):
            driver.play(torch.zeros(2, 2, dtype=torch.int64))

    def test_rejects_shape_mismatch(self, small_ctx):
        driver, _, _ = _driver(small_ctx, [])

        with pytest.raises(ValueError, match="Cannot multiply"):
            driver.play(torch.zeros(2, 3, dtype=torch.int64), torch.zeros(4, 2, dtype=torch.int64))

    def test_expected_results(self, small_ctx):
        driver, _, _ = _driver(small_ctx, [])

        assert driver.expected_results(10, 5) == 10
        assert driver.expected_results(1, 11) == 2
        assert driver.expected_results(8, 1) == 1


class TestWarnings:

    def test_noisy_ciphertext(self, small_ctx, caplog):
        a, b = _operands(small_ctx.p, 4, 4, 2)
        driver, _, _ = _driver(small_ctx, [(4, b)], noisy=True)

        with caplog.at_level(logging.WARNING, logger="slotgemm.client"):
            _, report = driver.play(a, b)

        assert report.decryption_ok is False
        assert report.verified is True
        assert "Decryption might fail" in caplog.text

    def test_wrong_result_is_reported(self, small_ctx, caplog):
        a, b = _operands(small_ctx.p, 4, 4, 2)
        other = (b + 1) % small_ctx.p
        driver, _, _ = _driver(small_ctx, [(4, other)])

        with caplog.at_level(logging.WARNING, logger="slotgemm.client"):
            _, report = driver.play(a, b)

        assert report.verified is False
        assert "seems wrong" in caplog.text

    def test_count_mismatch_is_logged(self, small_ctx, caplog):
        a, b = _operands(small_ctx.p, 4, 4, 2)
        driver, _, _ = _driver(small_ctx, [(4, b)], count_override=1)

        with caplog.at_level(logging.WARNING, logger="slotgemm.client"):
            computed, report = driver.play(a, b)

        assert report.ciphertexts_received == 1
        assert "expected 2" in caplog.text
        assert torch.equal(computed[:, 1], torch.zeros(4, dtype=torch.int64))


class TestRandomRuns:

    def test_play_random_is_seeded(self, small_ctx):
        gen = torch.Generator().manual_seed(123)
        a = randomize(6, 5, small_ctx.p, generator=gen)
        b = randomize(5, 4, small_ctx.p, generator=gen)
        driver, _, _ = _driver(small_ctx, [(6, b)])

        computed, report = driver.play_random(6, 5, 4)

        assert report.verified is True
        assert torch.equal(computed, matmul_mod(a, b, small_ctx.p))

    def test_play_many(self, tiny_ctx):
        shapes = [(9, 5, 3), (1, 4, 10)]
        jobs = []
        for n1, n2, n3 in shapes:
            gen = torch.Generator().manual_seed(123)
            randomize(n1, n2, tiny_ctx.p, generator=gen)
            jobs.append((n1, randomize(n2, n3, tiny_ctx.p, generator=gen)))
        driver, _, transport = _driver(tiny_ctx, jobs)

        results = driver.play_many(shapes)

        assert len(results) == 2
        assert all(report.verified for _, report in results)
        assert results[1][0].shape == (1, 10)
        assert len(transport.keys) == 2
