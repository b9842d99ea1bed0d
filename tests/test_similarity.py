import unittest
import sys
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from memora.core.similarity import combine_search_results, cosine_similarity, rank_by_similarity


class TestCosineSimilarity(unittest.TestCase):

    def test_identical_vectors(self):
        self.assertAlmostEqual(cosine_similarity([1, 0, 0, 0], [1, 0, 0, 0]), 1.0)

    def test_orthogonal_vectors(self):
        self.assertAlmostEqual(cosine_similarity([1, 0, 0, 0], [0, 1, 0, 0]), 0.0)

    def test_opposite_vectors(self):
        self.assertAlmostEqual(cosine_similarity([1, 2, 3], [-1, -2, -3]), -1.0)

    def test_self_similarity_of_arbitrary_vector(self):
        vector = [0.12, -0.7, 3.4, 0.0001, -2.2]
        self.assertAlmostEqual(cosine_similarity(vector, vector), 1.0, places=12)

    def test_symmetric(self):
        a = [0.3, -1.2, 0.8, 2.0]
        b = [1.1, 0.4, -0.6, 0.9]
        self.assertEqual(cosine_similarity(a, b), cosine_similarity(b, a))

    def test_ignores_magnitude(self):
        self.assertAlmostEqual(cosine_similarity([1, 1], [10, 10]), 1.0)

    def test_zero_vector(self):
        self.assertEqual(cosine_similarity([0, 0, 0], [1, 2, 3]), 0.0)

    def test_length_mismatch(self):
        with self.assertRaises(ValueError):
            cosine_similarity([1, 0, 0], [1, 0])

    def test_empty_vectors(self):
        with self.assertRaises(ValueError):
            cosine_similarity([], [])


class TestRankBySimilarity(unittest.TestCase):

    def setUp(self):
        self.query = [1.0, 0.0]
        self.candidates = [
            [0.0, 1.0],   # 0.0
            [1.0, 0.0],   # 1.0
            [1.0, 1.0],   # ~0.707
            [-1.0, 0.0],  # -1.0
        ]
        self.texts = ["orthogonal", "same", "diagonal", "opposite"]

    def test_sorted_descending(self):
        results = rank_by_similarity(self.query, self.candidates, 4, texts=self.texts)

        self.assertEqual([r.index for r in results], [1, 2, 0, 3])
        self.assertEqual([r.text for r in results], ["same", "diagonal", "orthogonal", "opposite"])
        similarities = [r.similarity for r in results]
        self.assertEqual(similarities, sorted(similarities, reverse=True))

    def test_top_k_larger_than_candidates(self):
        results = rank_by_similarity(self.query, self.candidates, 50)
        self.assertEqual(len(results), len(self.candidates))

    def test_top_k_truncates(self):
        results = rank_by_similarity(self.query, self.candidates, 2)
        self.assertEqual([r.index for r in results], [1, 2])

    def test_top_k_zero(self):
        self.assertEqual(rank_by_similarity(self.query, self.candidates, 0), [])

    def test_ties_keep_candidate_order(self):
        candidates = [[2.0, 0.0], [0.0, 1.0], [5.0, 0.0], [1.0, 0.0]]
        results = rank_by_similarity([1.0, 0.0], candidates, 4)
        self.assertEqual([r.index for r in results], [0, 2, 3, 1])

    def test_threshold_is_strict(self):
        results = rank_by_similarity(self.query, self.candidates, 10, threshold=0.0)
        self.assertEqual([r.index for r in results], [1, 2])

    def test_no_candidates(self):
        self.assertEqual(rank_by_similarity(self.query, [], 5), [])

    def test_text_defaults_to_empty(self):
        results = rank_by_similarity(self.query, self.candidates, 1)
        self.assertEqual(results[0].text, "")

    def test_mismatched_candidate_raises(self):
        with self.assertRaises(ValueError):
            rank_by_similarity(self.query, [[1.0, 0.0], [1.0, 0.0, 0.0]], 2)

    def test_negative_top_k_raises(self):
        with self.assertRaises(ValueError):
            rank_by_similarity(self.query, self.candidates, -1)

    def test_texts_must_align(self):
        with self.assertRaises(ValueError):
            rank_by_similarity(self.query, self.candidates, 2, texts=["only one"])


class TestCombineSearchResults(unittest.TestCase):

    def test_merges_and_deduplicates(self):
        semantic = [
            {"id": "a", "similarity": 0.91},
            {"transcription_id": "b", "similarity": 0.75},
        ]
        keyword = [
            {"id": "a", "rank": 0.99},
            {"id": "c", "rank": 0.8},
            {"id": "d", "rank": 0.1},
        ]

        combined = combine_search_results(semantic, keyword)

        self.assertEqual(
            [r.get("id") or r.get("transcription_id") for r in combined],
            ["a", "c", "b", "d"],
        )
        self.assertEqual(combined[1]["similarity"], 0.8)

    def test_missing_similarity_sorts_last(self):
        combined = combine_search_results([{"id": "a", "similarity": None}], [{"id": "b", "rank": 0.2}])
        self.assertEqual([r["id"] for r in combined], ["b", "a"])


if __name__ == '__main__':
    unittest.main()
