import numpy as np
import pytest

from gravsim.engine import SimulationWorld, WorldConfig
from gravsim.geometry import calculate_radius


class TestSetParameter:

    def test_density_recomputes_radii(self, world):
        world.spawn_body(100.0, 10.0, 10.0)
        world.spawn_body(500.0, 60.0, 60.0)
        assert world.set_parameter('density', 8.0)
        for body in world.bodies:
            assert body.radius == pytest.approx(calculate_radius(body.mass, 8.0))

    def test_new_bodies_use_new_density(self, world):
        world.set_parameter('density', 0.5)
        world.spawn_body(100.0, 10.0, 10.0)
        assert world.bodies[0].radius == pytest.approx(calculate_radius(100.0, 0.5))

    def test_gravity_constant(self, world):
        assert world.set_parameter('G', 0.1)
        assert world.config.G == 0.1
        world.spawn_body(10.0, 10.0, 10.0)
        world.spawn_body(10.0, 30.0, 10.0)
        world.apply_gravity()
        assert world.bodies[0].vx == pytest.approx(0.1 * 10.0 / 400.0)

    def test_negative_gravity_allowed(self, world):
        assert world.set_parameter('G', -1.0)
        assert world.config.G == -1.0

    def test_max_mass(self, world):
        assert world.set_parameter('max_mass', 40000)
        assert world.config.max_mass == 40000.0

    @pytest.mark.parametrize('name, value', [
        ('density', 0.0),
        ('density', -1.0),
        ('max_mass', float('nan')),
        ('width', 0.0),
        ('height', float('inf')),
        ('G', float('nan')),
        ('G', 'strong'),
        ('speed_of_light', 1.0),
    ])
    def test_invalid_values_are_ignored(self, world, name, value):
        before = (world.config.G, world.config.density, world.config.max_mass,
                  world.config.width, world.config.height)
        assert world.set_parameter(name, value) is False
        after = (world.config.G, world.config.density, world.config.max_mass,
                 world.config.width, world.config.height)
        assert before == after

    def test_invalid_value_logged(self, world, caplog):
        with caplog.at_level('WARNING', logger='gravsim.engine'):
            world.set_parameter('density', -2.0)
        assert 'density' in caplog.text


class TestResize:

    def test_rescale_keeps_relative_layout(self, world):
        world.spawn_body(100.0, 50.0, 25.0)
        radius = world.bodies[0].radius
        assert world.set_parameter('width', 200.0)
        assert world.set_parameter('height', 50.0)
        (body,) = world.bodies
        assert (body.x, body.y) == (pytest.approx(100.0), pytest.approx(12.5))
        assert body.radius == pytest.approx(radius * 0.5)
        assert world.config.length_scale == pytest.approx(0.5)
        assert (world.config.width, world.config.height) == (200.0, 50.0)

    def test_shrinking_does_not_create_overlaps(self):
        world = SimulationWorld(WorldConfig(width=800.0, height=600.0, G=0.0))
        world.spawn_body(1000.0, 100.0, 300.0)
        world.spawn_body(1000.0, 130.0, 300.0)
        assert world.step().merges == 0

        world.set_dimensions(200.0, 150.0)
        a, b = world.bodies
        assert b.x - a.x == pytest.approx(7.5)
        assert a.radius + b.radius < 7.5
        assert world.step().merges == 0
        assert world.body_count == 2

    def test_scaled_radius_survives_density_change(self, world):
        world.spawn_body(100.0, 50.0, 50.0)
        world.set_dimensions(300.0, 300.0)
        world.set_parameter('density', 2.0)
        assert world.bodies[0].radius == pytest.approx(3.0 * calculate_radius(100.0, 2.0))
        world.spawn_body(100.0, 10.0, 10.0)
        assert world.bodies[1].radius == pytest.approx(world.bodies[0].radius)

    def test_reset_keeps_length_scale(self, bounded_world):
        bounded_world.set_dimensions(50.0, 50.0)
        assert bounded_world.config.length_scale == 1.0
        bounded_world.spawn_body(100.0, 10.0, 10.0)
        assert bounded_world.bodies[0].radius == pytest.approx(calculate_radius(100.0, 1.0))

    def test_set_dimensions(self, world):
        world.spawn_body(1.0, 10.0, 90.0)
        assert world.set_dimensions(50.0, 300.0)
        (body,) = world.bodies
        assert body.x == pytest.approx(5.0)
        assert body.y == pytest.approx(270.0)

    def test_set_dimensions_rejects_bad_size(self, world):
        assert world.set_dimensions(-1.0, 10.0) is False
        assert world.config.width == 100.0

    def test_rescaled_positions_stay_in_range(self, world):
        world.spawn_body(1.0, 99.99999999999999, 0.0)
        world.set_dimensions(3.0, 7.0)
        (body,) = world.bodies
        assert 0.0 <= body.x < 3.0

    def test_bounded_resize_clears(self, bounded_world):
        bounded_world.spawn_body(1.0, 10.0, 10.0)
        assert bounded_world.set_parameter('width', 300.0)
        assert bounded_world.body_count == 0
        assert bounded_world.config.width == 300.0
        assert bounded_world.spawn_body(1.0, 250.0, 10.0) is not None

    def test_explicit_policy_overrides_topology(self):
        world = SimulationWorld(WorldConfig(width=100.0, height=100.0,
                                            toroidal=True, resize_policy='reset'))
        world.spawn_body(1.0, 10.0, 10.0)
        world.set_dimensions(200.0, 200.0)
        assert world.body_count == 0

    def test_gravity_uses_new_wrap_size(self):
        world = SimulationWorld(WorldConfig(width=100.0, height=100.0, G=1.0))
        world.spawn_body(1.0, 10.0, 50.0)
        world.spawn_body(1.0, 80.0, 50.0)
        world.apply_gravity()
        # 30 apart through the edge
        assert world.bodies[0].vx < 0

        world = SimulationWorld(WorldConfig(width=100.0, height=100.0, G=1.0))
        world.spawn_body(1.0, 10.0, 50.0)
        world.spawn_body(1.0, 80.0, 50.0)
        world.set_dimensions(300.0, 100.0)
        world.apply_gravity()
        # 210 apart directly, 90 through the edge
        assert world.bodies[0].vx < 0
        np.testing.assert_allclose(world.bodies[0].vx, -1.0 / 90.0 ** 2)
