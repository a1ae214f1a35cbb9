import pytest

from camstream.colour_matrix import Matrix

IDENTITY = Matrix(1, 1, 1)
SAMPLE = Matrix(1.90255, -0.77478, -0.12777, -0.31338, 1.88197, -0.56858, -0.06001, -0.61785, 1.67786)


def test_constructors():
    assert list(Matrix()) == [0.0] * 9
    assert Matrix.diagonal(2, 3, 4) == Matrix(2, 0, 0, 0, 3, 0, 0, 0, 4)
    with pytest.raises(TypeError):
        Matrix(1, 2)


def test_transpose_is_involution():
    assert SAMPLE.transpose().transpose() == SAMPLE
    assert SAMPLE.transpose()[1] == SAMPLE[3]


def test_diagonal_determinant():
    assert Matrix(2, 3, 4).determinant() == pytest.approx(24.0)


def test_inverse_gives_identity():
    product = SAMPLE * SAMPLE.inverse()
    assert list(product) == pytest.approx(list(IDENTITY), abs=1e-9)
    assert list(IDENTITY.inverse()) == pytest.approx(list(IDENTITY))


def test_adjugate_is_det_times_inverse():
    expected = SAMPLE.inverse() * SAMPLE.determinant()
    assert list(SAMPLE.adjugate()) == pytest.approx(list(expected))


def test_scalar_multiplication():
    assert 2 * SAMPLE == SAMPLE * 2
    assert list(SAMPLE * 2) == pytest.approx([2 * v for v in SAMPLE])


def test_multiply_by_identity():
    assert SAMPLE * IDENTITY == SAMPLE
    assert IDENTITY * SAMPLE == SAMPLE


def test_singular_inverse_raises():
    with pytest.raises(ValueError):
        Matrix(1, 2, 3, 2, 4, 6, 0, 0, 1).inverse()