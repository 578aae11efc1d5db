import unittest

from city_geo import ReferencePoint, compute_all, distance_km
from city_schema import City
from interaction import (
    IDLE,
    DistanceMode,
    InteractionState,
    InteractionStateMachine,
    annotate_cities,
)

PARIS = City(id=1, name="Paris", region="Île-de-France", population=2_100_000, latitude=48.8566, longitude=2.3522)
LYON = City(id=2, name="Lyon", region="Auvergne-Rhône-Alpes", population=520_000, latitude=45.7640, longitude=4.8357)
MARSEILLE = City(id=3, name="Marseille", region="Provence-Alpes-Côte d'Azur", population=870_000, latitude=43.2965, longitude=5.3698)
CITIES = (PARIS, LYON, MARSEILLE)

CLERMONT = ReferencePoint(lat=45.7772, lon=3.0870)
BORDEAUX = ReferencePoint(lat=44.8378, lon=-0.5792)


class HoverTests(unittest.TestCase):
    def test_starts_idle(self) -> None:
        machine = InteractionStateMachine(CITIES)
        self.assertEqual(machine.state, IDLE)
        self.assertTrue(machine.state.is_idle)
        self.assertIsNone(machine.state.mode)

    def test_hover_without_user_location_has_no_distances(self) -> None:
        machine = InteractionStateMachine(CITIES)
        state = machine.hover(LYON)
        self.assertEqual(state.hovered_city_id, 2)
        self.assertIsNone(state.distances)
        self.assertIsNone(state.reference_point)

    def test_hover_with_user_location_has_single_distance(self) -> None:
        home = ReferencePoint(lat=48.8566, lon=2.3522)
        machine = InteractionStateMachine(CITIES, user_location=home)

        state = machine.hover(LYON)

        self.assertEqual(state.mode, DistanceMode.HOVER)
        self.assertEqual(len(state.distances), 1)
        self.assertEqual(state.distance_for(2), distance_km(48.8566, 2.3522, 45.7640, 4.8357))
        self.assertIsNone(state.distance_for(1))

    def test_hover_moves_between_cities(self) -> None:
        machine = InteractionStateMachine(CITIES, user_location=CLERMONT)
        machine.hover(LYON)
        state = machine.hover(MARSEILLE)
        self.assertEqual(state.hovered_city_id, 3)
        self.assertEqual([entry.city_id for entry in state.distances], [3])

    def test_unhover_returns_to_idle(self) -> None:
        machine = InteractionStateMachine(CITIES, user_location=CLERMONT)
        machine.hover(PARIS)
        self.assertEqual(machine.unhover(), IDLE)

    def test_unhover_when_idle_is_noop(self) -> None:
        machine = InteractionStateMachine(CITIES)
        self.assertEqual(machine.unhover(), IDLE)

    def test_hover_unknown_id_is_ignored(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.hover(PARIS)
        self.assertEqual(machine.hover_id(99).hovered_city_id, 1)


class ClickTests(unittest.TestCase):
    def test_click_computes_distance_for_every_city(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.hover(PARIS)

        state = machine.click(CLERMONT)

        self.assertEqual(state.mode, DistanceMode.CLICK)
        self.assertIsNone(state.hovered_city_id)
        self.assertEqual(state.reference_point, CLERMONT)
        self.assertEqual(state.distances, compute_all(CLERMONT, CITIES))

    def test_hover_after_click_keeps_click_distances(self) -> None:
        machine = InteractionStateMachine(CITIES, user_location=BORDEAUX)
        clicked = machine.click(CLERMONT)

        state = machine.hover(MARSEILLE)

        self.assertEqual(state.hovered_city_id, 3)
        self.assertEqual(state.distances, clicked.distances)
        self.assertEqual(len(state.distances), 3)
        self.assertEqual(state.reference_point, CLERMONT)

    def test_unhover_after_click_changes_nothing(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.click(CLERMONT)
        hovered = machine.hover(LYON)

        state = machine.unhover()

        self.assertEqual(state, hovered)
        self.assertEqual(state.reference_point, CLERMONT)
        self.assertEqual(state.distances, compute_all(CLERMONT, CITIES))

    def test_new_click_replaces_previous_point(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.click(CLERMONT)

        state = machine.click(BORDEAUX)

        self.assertEqual(state.reference_point, BORDEAUX)
        self.assertEqual(state.distances, compute_all(BORDEAUX, CITIES))
        self.assertNotEqual(state.distances, compute_all(CLERMONT, CITIES))

    def test_click_at_antipode_of_city(self) -> None:
        far = City(id=9, name="Far", region="X", population=1, latitude=71.41669474462341, longitude=-141.21695337202192)
        machine = InteractionStateMachine((far,))

        state = machine.click(ReferencePoint(lat=-71.41669474462341, lon=38.78304662797808))

        self.assertLessEqual(abs(state.distance_for(9) - 20015), 1)

    def test_click_on_empty_collection(self) -> None:
        machine = InteractionStateMachine(())
        state = machine.click(CLERMONT)
        self.assertEqual(state.distances, ())
        self.assertEqual(state.mode, DistanceMode.CLICK)

    def test_reset_clears_everything(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.click(CLERMONT)
        machine.hover(PARIS)
        self.assertEqual(machine.reset(), IDLE)


class CollectionChangeTests(unittest.TestCase):
    def test_new_collection_recomputes_click_distances(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.click(CLERMONT)

        state = machine.set_cities((LYON,))

        self.assertEqual(state.distances, compute_all(CLERMONT, (LYON,)))
        self.assertEqual(state.reference_point, CLERMONT)

    def test_hovered_city_dropped_when_filtered_out(self) -> None:
        machine = InteractionStateMachine(CITIES, user_location=CLERMONT)
        machine.hover(PARIS)
        self.assertEqual(machine.set_cities((LYON, MARSEILLE)), IDLE)

    def test_hovered_city_kept_when_still_present(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.click(CLERMONT)
        machine.hover(LYON)
        state = machine.set_cities((LYON,))
        self.assertEqual(state.hovered_city_id, 2)

    def test_user_location_change_refreshes_hover_distance(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.hover(LYON)
        state = machine.set_user_location(CLERMONT)
        self.assertEqual(state.distance_for(2), distance_km(CLERMONT.lat, CLERMONT.lon, LYON.latitude, LYON.longitude))
        self.assertIsNone(machine.set_user_location(None).distances)


class AnnotateCitiesTests(unittest.TestCase):
    def test_rows_show_distance_and_highlight(self) -> None:
        machine = InteractionStateMachine(CITIES)
        machine.click(CLERMONT)
        state = machine.hover(LYON)

        rows = annotate_cities(CITIES, state)

        self.assertEqual([row.highlighted for row in rows], [False, True, False])
        expected = distance_km(CLERMONT.lat, CLERMONT.lon, LYON.latitude, LYON.longitude)
        self.assertEqual(rows[1].label, f"[ {expected} km ] - Lyon")

    def test_rows_without_distances(self) -> None:
        rows = annotate_cities(CITIES, InteractionState())
        self.assertEqual([row.label for row in rows], ["Paris", "Lyon", "Marseille"])
        self.assertTrue(all(row.distance is None for row in rows))


if __name__ == "__main__":
    unittest.main()
