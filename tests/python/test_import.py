"""
Test that netmpc can be imported and exposes its public API.
"""


def test_import_netmpc():
    """Verify netmpc package can be imported."""
    import netmpc
    assert hasattr(netmpc, "__version__")


def test_version_format():
    """Verify version string is properly formatted."""
    import netmpc
    parts = netmpc.__version__.split(".")
    assert len(parts) >= 2
    assert all(p.isdigit() for p in parts)


def test_import_controller():
    from netmpc import PredictiveController
    assert hasattr(PredictiveController, "from_args")


def test_import_solve_qp():
    from netmpc import solve_qp
    assert callable(solve_qp)


def test_all_exports_resolve():
    import netmpc
    import netmpc.mpc

    for module in (netmpc, netmpc.mpc):
        for name in module.__all__:
            assert hasattr(module, name), name


def test_validation_errors_share_base():
    import netmpc

    names = [name for name in netmpc.__all__ if name.startswith("Invalid")]
    assert len(names) == 22
    for name in names:
        assert issubclass(getattr(netmpc, name), netmpc.ValidationError)


def test_info():
    import netmpc
    info = netmpc.info()
    assert "netmpc version" in info
    assert "SciPy version" in info
