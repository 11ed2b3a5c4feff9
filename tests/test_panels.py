import pytest

from graphmentor.client.panels import CanvasPanel, CanvasState, GraphPanel, GraphState
from graphmentor.errors import CanvasNotReady, LibraryLoadTimeout


class FakeSurface:
    def __init__(self, url="data:image/png;base64,AAAA"):
        self.url = url

    def to_data_url(self):
        return self.url


class FakeCalculator:
    def __init__(self):
        self.log = []
        self.current = []
        self.destroyed = False

    def set_blank(self):
        self.log.append("blank")
        self.current = []

    def set_expressions(self, expressions):
        self.log.append(("set", [e["latex"] for e in expressions]))
        self.current = list(expressions)

    def destroy(self):
        self.destroyed = True


class TestCanvasPanel:
    def test_state_transitions(self):
        panel = CanvasPanel()
        assert panel.state == CanvasState.CLOSED
        panel.open()
        assert panel.state == CanvasState.OPEN
        panel.mount(FakeSurface())
        assert panel.state == CanvasState.READY
        panel.close()
        assert panel.state == CanvasState.CLOSED

    @pytest.mark.asyncio
    async def test_snapshot_when_ready(self):
        panel = CanvasPanel()
        panel.open()
        panel.mount(FakeSurface("data:image/png;base64,QQ=="))
        assert await panel.request_snapshot() == "data:image/png;base64,QQ=="

    @pytest.mark.asyncio
    async def test_snapshot_not_ready_times_out(self):
        panel = CanvasPanel()
        panel.open()
        with pytest.raises(CanvasNotReady):
            await panel.request_snapshot(timeout=0.01)

    @pytest.mark.asyncio
    async def test_snapshot_on_closed_panel(self):
        with pytest.raises(CanvasNotReady):
            await CanvasPanel().request_snapshot(timeout=0.01)


class TestGraphPanel:
    def test_open_starts_loading(self):
        panel = GraphPanel()
        panel.open()
        assert panel.state == GraphState.LOADING
        panel.library_loaded(FakeCalculator())
        assert panel.state == GraphState.READY_BLANK

    def test_calculator_ignored_when_closed(self):
        panel = GraphPanel()
        panel.library_loaded(FakeCalculator())
        assert panel.state == GraphState.CLOSED
        assert panel.calculator is None

    @pytest.mark.asyncio
    async def test_plot_replaces_previous_expressions(self):
        panel = GraphPanel()
        calc = FakeCalculator()
        panel.open()
        panel.library_loaded(calc)

        await panel.plot(["y=x", "y=2x"])
        assert panel.state == GraphState.READY_PLOTTED
        await panel.plot(["y=x^2"])

        assert panel.expressions == ["y=x^2"]
        assert calc.current == [{"id": "expr-0", "latex": "y=x^2"}]
        assert calc.log == ["blank", ("set", ["y=x", "y=2x"]), "blank", ("set", ["y=x^2"])]

    @pytest.mark.asyncio
    async def test_library_timeout(self):
        panel = GraphPanel()
        with pytest.raises(LibraryLoadTimeout):
            await panel.plot(["y=x"], timeout=0.01)
        assert panel.state == GraphState.LOADING

    def test_close_destroys_calculator(self):
        panel = GraphPanel()
        calc = FakeCalculator()
        panel.open()
        panel.library_loaded(calc)
        panel.close()
        assert calc.destroyed
        assert panel.state == GraphState.CLOSED
        assert panel.calculator is None

    @pytest.mark.asyncio
    async def test_clear_returns_to_blank(self):
        panel = GraphPanel()
        panel.open()
        panel.library_loaded(FakeCalculator())
        await panel.plot(["y=1"])
        panel.clear()
        assert panel.state == GraphState.READY_BLANK
        assert panel.expressions == []
