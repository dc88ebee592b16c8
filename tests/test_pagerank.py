"""Tests for the power-iteration driver, sequential and partitioned."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from csc_pagerank.errors import NumericNonConvergence
from csc_pagerank.stage1_read import generate_random_edges, load_graph
from csc_pagerank.stage3_pagerank import (
    initial_vector,
    page_rank,
    page_rank_iter,
    power_iteration,
)


def _dense_pagerank(edges, n, d=0.85):
    """Reference solution: solve the damped system directly."""
    A = np.zeros((n, n))
    for u, v in edges:
        A[v, u] += 1.0
    out = A.sum(axis=0)
    dangling = out == 0
    A[:, dangling] = 1.0 / n
    A[:, ~dangling] /= out[~dangling]
    G = d * A + (1 - d) / n
    vals, vecs = np.linalg.eig(G)
    x = np.real(vecs[:, np.argmax(np.real(vals))])
    return x / x.sum()


class TestInitialVector:

    def test_uniform(self):
        assert_allclose(initial_vector(4), [0.25] * 4)

    def test_seeded_is_normalized_and_reproducible(self):
        a = initial_vector(100, seed=7)
        assert a.sum() == pytest.approx(1.0)
        assert np.all(a > 0)
        assert_allclose(a, initial_vector(100, seed=7))


class TestPowerIteration:

    def test_returns_iteration_count(self):
        x, iterations = power_iteration(lambda v: v * 0.5, np.ones(2), tol=1e-3)
        assert iterations == 11
        assert np.linalg.norm(x) < 1e-3

    def test_non_convergence(self):
        with pytest.raises(NumericNonConvergence) as info:
            power_iteration(lambda v: v[::-1].copy(), np.array([1.0, 0.0]), max_iterations=5)
        assert info.value.iterations == 5
        assert info.value.norm == pytest.approx(np.sqrt(2))

    def test_page_rank_respects_bound(self, sample_graph):
        m = load_graph(sample_graph)
        with pytest.raises(NumericNonConvergence):
            page_rank(m, tol=1e-15, max_iterations=3, seed=1)


class TestScenarios:

    def test_cycle_is_uniform(self, cycle3):
        x = page_rank(load_graph(cycle3))
        assert_allclose(x, [1 / 3] * 3, atol=1e-6)

    def test_cycle_from_random_start(self, cycle3):
        x = page_rank(load_graph(cycle3), tol=1e-10, seed=3)
        assert_allclose(x, [1 / 3] * 3, atol=1e-5)

    def test_dangling_pair(self, dangling2):
        m = load_graph(dangling2)
        assert m.null_columns.tolist() == [1]
        x = page_rank(m, tol=1e-12)
        # x0 = 0.425 * x1 + 0.075 with x0 + x1 = 1
        assert_allclose(x, [0.5 / 1.425, 1 - 0.5 / 1.425], atol=1e-9)
        assert x[0] > 0.15 / 2
        assert x.sum() == pytest.approx(1.0, abs=1e-6)

    def test_isolated_node_gets_teleport_floor(self, isolated):
        m = load_graph(isolated)
        x = page_rank(m)
        assert 3 in m.null_columns.tolist()
        assert x[3] >= 0.15 / 4
        assert x.sum() == pytest.approx(1.0, abs=1e-6)

    def test_matches_dense_solution(self, sample_graph, sample_edges):
        x = page_rank(load_graph(sample_graph), tol=1e-12)
        assert_allclose(x, _dense_pagerank(sample_edges, 10), atol=1e-9)


class TestInvariants:

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_sum_and_non_negative(self, write_graph, seed):
        n = 300
        m = load_graph(write_graph(n, generate_random_edges(n, avg_degree=6, seed=seed)))
        x = page_rank(m, seed=seed)
        assert x.sum() == pytest.approx(1.0, abs=1e-6)
        assert np.all(x >= 0)

    def test_step_preserves_mass(self, sample_graph):
        m = load_graph(sample_graph)
        v = initial_vector(m.n, seed=5)
        assert page_rank_iter(m, v).sum() == pytest.approx(1.0, abs=1e-12)

    def test_step_does_not_mutate_input(self, sample_graph):
        m = load_graph(sample_graph)
        v = initial_vector(m.n)
        before = v.copy()
        page_rank_iter(m, v)
        assert np.array_equal(v, before)

    def test_idempotent_once_converged(self, sample_graph):
        m = load_graph(sample_graph)
        x = page_rank(m, tol=1e-10)
        assert np.linalg.norm(page_rank_iter(m, x) - x) < 1e-6


class TestPartitioned:

    @pytest.mark.parametrize("cores", [1, 2, 3])
    def test_matches_sequential(self, sample_graph, cores):
        seq = page_rank(load_graph(sample_graph))
        par = page_rank(load_graph(sample_graph, cores=cores))
        assert_allclose(par, seq, atol=1e-12)

    def test_single_partition_reproduces_sequential(self, write_graph):
        path = write_graph(120, generate_random_edges(120, avg_degree=5, seed=9))
        assert_allclose(page_rank(load_graph(path, cores=1)), page_rank(load_graph(path)), atol=1e-12)

    def test_more_workers_than_partitions(self, sample_graph):
        parts = load_graph(sample_graph, cores=2)
        assert_allclose(page_rank(parts, cores=4), page_rank(parts), atol=1e-12)

    def test_dangling_pair_partitioned(self, dangling2):
        x = page_rank(load_graph(dangling2, cores=2), tol=1e-12)
        assert_allclose(x, [0.5 / 1.425, 1 - 0.5 / 1.425], atol=1e-9)

    def test_empty_last_partition(self, write_graph):
        # n=6, cores=4: width 2, so the last partition owns no rows.
        path = write_graph(6, [(0, 1), (0, 5), (1, 2), (2, 4), (3, 0), (4, 5), (5, 3)])
        parts = load_graph(path, cores=4)
        assert parts[-1].rows == 0
        assert_allclose(page_rank(parts), page_rank(load_graph(path)), atol=1e-12)
