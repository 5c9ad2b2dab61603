"""Tests for the regex-based JS/TS source inspector."""

import pytest

from flowmap.services.source_inspector import RegexSourceInspector

inspector = RegexSourceInspector()


class TestComponentName:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("export default function Dashboard() {}", "Dashboard"),
            ("export default const Settings = () => null", "Settings"),
            ("const Profile = ({ user }) => <div />;\nexport default Profile;", "Profile"),
            ("function Legacy(props) { return null }\nexport default Legacy", "Legacy"),
        ],
    )
    def test_detects_name(self, source, expected):
        assert inspector.component_name(source) == expected

    def test_default_export_wins_over_earlier_helper(self):
        source = "function helper() {}\nexport default function Page() {}"
        assert inspector.component_name(source) == "Page"

    def test_none_when_nothing_matches(self):
        assert inspector.component_name("export default () => null") is None


_ROUTES_SOURCE = """
<Routes>
  <Route path="/" element={<Home />} />
  <Route path="/about" component={About} />
  <Route path={"/users/:id"}>
    <UserPage />
  </Route>
  <Route element={<Layout />} />
  <Route path='/plain'>
    just text
  </Route>
  <Route path={`/docs`} element={<Docs title={"a > b"} />} />
</Routes>
"""


class TestJsxRoutes:
    def test_routes_in_source_order(self):
        routes = inspector.jsx_routes(_ROUTES_SOURCE, "src/App.tsx")
        assert [(r.path, r.component) for r in routes] == [
            ("/", "Home"),
            ("/about", "About"),
            ("/users/:id", "UserPage"),
            ("/plain", "Component"),
            ("/docs", "Docs"),
        ]

    def test_file_path_is_recorded(self):
        routes = inspector.jsx_routes(_ROUTES_SOURCE, "src/App.tsx")
        assert {r.file_path for r in routes} == {"src/App.tsx"}

    def test_routes_container_is_not_a_route(self):
        assert inspector.jsx_routes("<Routes></Routes>", "src/App.tsx") == []

    def test_nested_paths_join_onto_parent(self):
        source = (
            '<Route path="/dashboard" element={<DashboardLayout />}>'
            '<Route path="stats" element={<Stats />} />'
            '<Route path="teams/:id" element={<Team />}>'
            '<Route path="members" element={<Members />} />'
            "</Route>"
            '<Route path="/settings" element={<Settings />} />'
            "</Route>"
            '<Route path="help" element={<Help />} />'
        )
        routes = inspector.jsx_routes(source, "src/routes.tsx")
        assert [(r.path, r.component) for r in routes] == [
            ("/dashboard", "DashboardLayout"),
            ("/dashboard/stats", "Stats"),
            ("/dashboard/teams/:id", "Team"),
            ("/dashboard/teams/:id/members", "Members"),
            ("/settings", "Settings"),
            ("/help", "Help"),
        ]
        assert all(r.children is None for r in routes)

    def test_pathless_layout_passes_parent_path_through(self):
        source = (
            '<Route path="/shop">'
            "<Route element={<ShopLayout />}>"
            '<Route path="cart" element={<Cart />} />'
            "</Route>"
            "</Route>"
        )
        routes = inspector.jsx_routes(source, "src/routes.tsx")
        assert [r.path for r in routes] == ["/shop", "/shop/cart"]

    def test_relative_top_level_path_is_made_absolute(self):
        routes = inspector.jsx_routes('<Route path="about" element={<About />} />', "src/App.tsx")
        assert routes[0].path == "/about"

    def test_no_routes(self):
        assert inspector.jsx_routes("export const x = 1", "src/router.ts") == []
