"""
netmpc Model Predictive Control (MPC)
=====================================

Predictive control for networked control loops.

Every planning cycle solves a finite-horizon optimal control problem and
returns the first ``sequence_length`` moves of the optimal open-loop
input sequence. Buffering several moves at the actuator compensates for
lost or delayed packets.

Quick Start
-----------
>>> from netmpc.mpc import PredictiveController, GaussianBelief
>>>
>>> # x_{k+1} = A @ x_k + B @ u_k
>>> A = np.diag([0.9512, 0.9048])
>>> B = np.array([[4.877, 4.877], [-1.1895, 3.569]])
>>>
>>> controller = PredictiveController.for_regulation(
...     A, B, Q=np.diag([0.005, 0.02]), R=np.diag([1/3, 3]),
...     sequence_length=10,
...     state_weightings=np.ones(2), state_bound=1.0,    # x1 + x2 <= 1
...     input_weightings=np.ones(2), input_bound=0.5,    # u1 + u2 <= 0.5
... )
>>> belief = GaussianBelief(np.array([0.1, 0.0]), np.eye(2))
>>> sequence = controller.compute_control_sequence(belief, mode=0, timestep=1)

Reference Tracking
------------------
>>> controller = PredictiveController.for_tracking(
...     A, B, Qref, R, 10, w_x, c_x, w_u, c_u,
...     Z=np.array([[1.0, 0.0]]), ref_trajectory=constant_reference([0.5], 50),
... )

Jump Linear Systems
-------------------
>>> model = JumpModel.from_tensors(A, B, Q, R, transition_matrix, terminal_cost, ref_weightings)
>>> tables = riccati_recursion(model, horizon_length=10)
>>> u = tables.control(stage=0, mode=1, state=x)

Classes
-------
PredictiveController
    Linearly constrained predictive controller (regulation or tracking)
ConstrainedHorizonSolver
    Finite-horizon QP with the unconstrained Riccati shortcut
LinearSystem, JumpLinearSystem
    Per-mode linear dynamics
JumpModel, RecursionTables
    Input and output of the backward Riccati recursion

See Also
--------
- Kwakernaak & Sivan (1972): "Linear Optimal Control Systems"
- Costa, Fragoso & Marques (2005): "Discrete-Time Markov Jump Linear Systems"
"""

from .belief import GaussianBelief, get_belief_mean
from .constraints import LinearConstraint, input_constraint, state_constraint
from .controller import PredictiveController
from .dynamics import JumpLinearSystem, LinearSystem
from .horizon import ConstrainedHorizonSolver, HorizonConfig
from .riccati import JumpModel, ModeData, RecursionTables, riccati_recursion
from .trajectory import ReferenceSpec, constant_reference, step_reference

__all__ = [
    # Controllers
    "PredictiveController",
    "ConstrainedHorizonSolver",
    "HorizonConfig",
    # Dynamics
    "LinearSystem",
    "JumpLinearSystem",
    # Riccati recursion
    "JumpModel",
    "ModeData",
    "RecursionTables",
    "riccati_recursion",
    # Beliefs
    "GaussianBelief",
    "get_belief_mean",
    # Constraints
    "LinearConstraint",
    "state_constraint",
    "input_constraint",
    # Trajectories
    "ReferenceSpec",
    "constant_reference",
    "step_reference",
]
