import tempfile
from pathlib import Path
import numpy as np
import pytest
from scipy.linalg import eigh
from edhub.errors import (
    AlreadyComputed,
    BlockMismatch,
    NotComputed,
    OperatorUndefined,
)
from edhub.modeling import (
    MATRIX_ELEMENT_TOLERANCE,
    AnnihilationOperatorPart,
    CreationOperatorPart,
    EigenBlock,
    FieldOperatorKind,
    FieldOperatorPart,
    FieldOperatorRegistry,
    Term,
    TermSet,
)
from edhub.models import BasisClassifier

CONFIG = {
    "sites": [
        {"site": 0, "type": "s", "U": 2.0, "mu": 0.3},
        {"site": 1, "type": "s", "U": 2.5},
    ],
    "hopping": [{"sites": [0, 1], "t": -1.0}],
}


def build_classifier(config=CONFIG):
    classifier = BasisClassifier()
    classifier.readin(config)
    return classifier


def block_hamiltonian(classifier, states):
    hopping = classifier.get_hopping_matrix()
    kinetic = TermSet()
    for i, j in zip(*np.nonzero(hopping)):
        kinetic.add(Term((True, False), (i, j), hopping[i, j]))
    H = classifier.get_terms().get_matrix(states) + kinetic.get_matrix(states)
    return H.toarray()


def particle_blocks(classifier, phase=None):
    """Eigenblocks of the Hamiltonian, one per particle number."""
    n_bits = classifier.get_bit_size()
    all_states = np.arange(2**n_bits, dtype=np.int64)
    counts = np.array([bin(state).count("1") for state in all_states])
    blocks = {}
    for n in range(n_bits + 1):
        states = all_states[counts == n]
        values, vectors = eigh(block_hamiltonian(classifier, states))
        if phase is not None:
            vectors = vectors * np.exp(1j * phase * np.arange(vectors.shape[1]))
        blocks[n] = EigenBlock(n, states, vectors, values)
    return blocks


def reference_matrix(p_index, dagger, h_from, h_to):
    """Dense <n|O|m> by direct application of the ladder operator."""
    position = {int(state): ii for ii, state in enumerate(h_to.basis_states)}
    O = np.zeros((h_to.size, h_from.size))
    for col, state in enumerate(h_from.basis_states):
        state = int(state)
        occupied = (state >> p_index) & 1
        if occupied == dagger:
            continue
        new_state = state ^ (1 << p_index)
        if new_state not in position:
            continue
        sign = (-1) ** bin(state & ((1 << p_index) - 1)).count("1")
        O[position[new_state], col] = sign
    M = h_to.eigenvectors.conj().T @ O @ h_from.eigenvectors
    M[np.abs(M) < MATRIX_ELEMENT_TOLERANCE] = 0
    return M


@pytest.fixture(scope="module")
def classifier():
    return build_classifier()


@pytest.fixture(scope="module")
def blocks(classifier):
    return particle_blocks(classifier)


@pytest.fixture(scope="module")
def complex_blocks(classifier):
    return particle_blocks(classifier, phase=0.7)


def test_creation_matches_reference(classifier, blocks):
    bits = classifier.get_bit_info_list()
    for n in range(4):
        for p_index in range(4):
            part = CreationOperatorPart(bits, blocks[n], blocks[n + 1], p_index)
            part.compute()
            M = part.get_row_major_value()
            assert M.format == "csr"
            assert M.shape == (blocks[n + 1].n_eigenstates, blocks[n].n_eigenstates)
            ref = reference_matrix(p_index, True, blocks[n], blocks[n + 1])
            assert np.allclose(M.toarray(), ref, atol=1e-10)
            assert part.get_left_index() == n + 1
            assert part.get_right_index() == n


def test_annihilation_matches_reference(classifier, complex_blocks):
    bits = classifier.get_bit_info_list()
    for n in range(1, 5):
        for p_index in range(4):
            h_from, h_to = complex_blocks[n], complex_blocks[n - 1]
            part = AnnihilationOperatorPart(bits, h_from, h_to, p_index)
            part.compute()
            M = part.get_row_major_value()
            assert np.iscomplexobj(M.data)
            ref = reference_matrix(p_index, False, h_from, h_to)
            assert np.allclose(M.toarray(), ref, atol=1e-10)


def test_row_and_column_major_agree(classifier, blocks):
    part = CreationOperatorPart(classifier.get_bit_info_list(), blocks[1], blocks[2], 0)
    part.compute()
    csr = part.get_row_major_value()
    csc = part.get_col_major_value()
    assert csc.format == "csc"
    assert np.array_equal(csr.toarray(), csc.toarray())


def test_tolerance_and_determinism(classifier, blocks):
    bits = classifier.get_bit_info_list()
    parts = []
    for _ in range(2):
        part = AnnihilationOperatorPart(bits, blocks[2], blocks[1], 3)
        part.compute()
        parts.append(part.get_row_major_value())
    first, second = parts
    assert first.nnz > 0
    assert np.all(np.abs(first.data) >= MATRIX_ELEMENT_TOLERANCE)
    assert np.array_equal(first.indptr, second.indptr)
    assert np.array_equal(first.indices, second.indices)
    assert np.array_equal(first.data, second.data)


def test_disconnected_blocks_give_empty_part(classifier, blocks):
    part = CreationOperatorPart(classifier.get_bit_info_list(), blocks[1], blocks[3], 0)
    part.compute()
    M = part.get_row_major_value()
    assert M.nnz == 0
    assert M.shape == (blocks[3].n_eigenstates, blocks[1].n_eigenstates)


@pytest.mark.parametrize("phase", [None, 0.7])
def test_adjoint_duality(classifier, phase):
    blocks = particle_blocks(classifier, phase=phase)
    bits = classifier.get_bit_info_list()
    for p_index in range(4):
        annihilation = AnnihilationOperatorPart(bits, blocks[2], blocks[1], p_index)
        annihilation.compute()
        creation = annihilation.transpose()
        assert isinstance(creation, CreationOperatorPart)
        assert creation.is_computed()
        assert creation.transpose() is annihilation
        assert annihilation.transpose() is creation
        assert creation.get_left_index() == 2
        assert creation.get_right_index() == 1
        A = annihilation.get_row_major_value().toarray()
        C = creation.get_row_major_value().toarray()
        assert np.array_equal(C, A.conj().T)
        assert np.array_equal(creation.get_col_major_value().toarray(), C)
        # The rotation formula gives the same matrix
        direct = CreationOperatorPart(bits, blocks[1], blocks[2], p_index)
        direct.compute()
        assert np.allclose(direct.get_row_major_value().toarray(), C, atol=1e-10)
        with pytest.raises(AlreadyComputed):
            creation.compute()


def test_compute_twice(classifier, blocks):
    part = CreationOperatorPart(classifier.get_bit_info_list(), blocks[0], blocks[1], 1)
    part.compute()
    with pytest.raises(AlreadyComputed) as exc_info:
        part.compute()
    assert isinstance(exc_info.value, RuntimeError)
    assert exc_info.value.p_index == 1
    assert exc_info.value.blocks == (0, 1)


def test_not_computed(classifier, blocks):
    part = CreationOperatorPart(classifier.get_bit_info_list(), blocks[0], blocks[1], 1)
    for method in (
        part.get_row_major_value,
        part.get_col_major_value,
        part.get_left_index,
        part.get_right_index,
        part.transpose,
        part.print_to_screen,
    ):
        with pytest.raises(NotComputed):
            method()
    with pytest.raises(NotComputed):
        part.savetxt("never_written.dat")


def test_operator_undefined(classifier, blocks):
    part = CreationOperatorPart(classifier.get_bit_info_list(), blocks[0], blocks[1], 7)
    with pytest.raises(OperatorUndefined) as exc_info:
        part.compute()
    assert exc_info.value.p_index == 7
    assert "blocks 0->1" in str(exc_info.value)
    assert not part.is_computed()


def test_block_mismatch(classifier, blocks):
    bits = classifier.get_bit_info_list()
    good = blocks[1]
    truncated = EigenBlock(9, good.basis_states, good.eigenvectors[:-1, :])
    part = AnnihilationOperatorPart(bits, truncated, blocks[0], 0)
    with pytest.raises(BlockMismatch):
        part.compute()
    flat = EigenBlock(8, good.basis_states, good.eigenvectors[:, 0])
    part = CreationOperatorPart(bits, blocks[0], flat, 0)
    with pytest.raises(BlockMismatch):
        part.compute()


def test_kind_is_required(classifier, blocks):
    with pytest.raises(TypeError):
        FieldOperatorPart(classifier.get_bit_info_list(), blocks[0], blocks[1], 0)
    with pytest.raises(TypeError):
        CreationOperatorPart(classifier.get_bit_info_list(), blocks[0], blocks[1], 0.5)
    assert FieldOperatorKind.CREATION.dagger
    assert not FieldOperatorKind.ANNIHILATION.dagger
    assert FieldOperatorKind.CREATION.dual is FieldOperatorKind.ANNIHILATION


def test_eigen_block_validation(blocks):
    with pytest.raises(ValueError):
        EigenBlock(0, np.array([3, 1]), np.eye(2))
    block = blocks[2]
    with pytest.raises(ValueError):
        block.eigenvectors[0, 0] = 1.0
    assert block.size == 6
    assert block.n_eigenstates == 6


def test_registry(classifier, blocks):
    bits = classifier.get_bit_info_list()
    registry = FieldOperatorRegistry()
    for p_index in range(4):
        for n in range(1, 5):
            registry.add(AnnihilationOperatorPart(bits, blocks[n], blocks[n - 1], p_index))
    assert len(registry) == 16
    assert registry.compute_all(max_workers=2) == 16
    assert registry.compute_all() == 0
    for p_index in range(4):
        for n in range(1, 5):
            annihilation = registry.get(FieldOperatorKind.ANNIHILATION, p_index, n, n - 1)
            creation = registry.get_or_build_dual(annihilation)
            assert creation is annihilation.transpose()
            assert registry.get(FieldOperatorKind.CREATION, p_index, n - 1, n) is creation
            assert registry.get_or_build_dual(creation) is annihilation
    assert len(registry) == 32
    with pytest.raises(KeyError):
        registry.add(AnnihilationOperatorPart(bits, blocks[1], blocks[0], 0))


def test_registry_prefers_computed_dual(classifier, blocks):
    bits = classifier.get_bit_info_list()
    registry = FieldOperatorRegistry()
    creation = registry.add(CreationOperatorPart(bits, blocks[0], blocks[1], 2))
    annihilation = registry.add(AnnihilationOperatorPart(bits, blocks[1], blocks[0], 2))
    with pytest.raises(NotComputed):
        registry.get_or_build_dual(annihilation)
    creation.compute()
    # The registered annihilation part is not computed: derive it from creation
    dual = registry.get_or_build_dual(creation)
    assert dual is creation.transpose()
    assert registry.get(FieldOperatorKind.ANNIHILATION, 2, 1, 0) is dual
    assert registry.get_or_build_dual(dual) is creation


def test_registry_links_independently_computed_duals(classifier, blocks):
    bits = classifier.get_bit_info_list()
    registry = FieldOperatorRegistry()
    creation = registry.add(CreationOperatorPart(bits, blocks[1], blocks[2], 3))
    annihilation = registry.add(AnnihilationOperatorPart(bits, blocks[2], blocks[1], 3))
    registry.compute_all()
    assert registry.get_or_build_dual(creation) is annihilation
    assert creation.transpose() is annihilation
    assert annihilation.transpose() is creation
    assert registry.get_or_build_dual(annihilation) is creation
    assert len(registry) == 2


def test_savetxt(classifier, blocks, tmp_path):
    part = CreationOperatorPart(classifier.get_bit_info_list(), blocks[1], blocks[2], 2)
    part.compute()
    part.print_to_screen()
    filename = tmp_path / "creation_2.dat"
    part.savetxt(str(filename))
    lines = filename.read_text().splitlines()
    M = part.get_row_major_value()
    assert lines[0] == "# shape"
    assert lines[1] == f"{M.shape[0]} {M.shape[1]}"
    assert len(lines) == 3 + M.nnz


def main():
    classifier = build_classifier()
    blocks = particle_blocks(classifier)
    complex_blocks = particle_blocks(classifier, phase=0.7)
    test_creation_matches_reference(classifier, blocks)
    test_annihilation_matches_reference(classifier, complex_blocks)
    test_row_and_column_major_agree(classifier, blocks)
    test_tolerance_and_determinism(classifier, blocks)
    test_disconnected_blocks_give_empty_part(classifier, blocks)
    test_adjoint_duality(classifier, None)
    test_adjoint_duality(classifier, 0.7)
    test_compute_twice(classifier, blocks)
    test_not_computed(classifier, blocks)
    test_operator_undefined(classifier, blocks)
    test_block_mismatch(classifier, blocks)
    test_kind_is_required(classifier, blocks)
    test_eigen_block_validation(blocks)
    test_registry(classifier, blocks)
    test_registry_prefers_computed_dual(classifier, blocks)
    test_registry_links_independently_computed_duals(classifier, blocks)
    with tempfile.TemporaryDirectory() as tmp_dir:
        test_savetxt(classifier, blocks, Path(tmp_dir))
    print("Field operator parts: PASS")


if __name__ == "__main__":
    main()
