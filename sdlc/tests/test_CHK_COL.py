from chunk_locator import ChunkLocator

# Test Protocol for chunk_locator.ChunkLocator.collect_above

LINES = ["```{r}", "a <- 1", "```", "prose", "```{r}", "b <- 2", "c <- 3", "```"]

def test_CHK_COL_001_collects_in_order_without_fences():
    """
    Tests CHK-COL-001: Content up to and including the cursor line, one group per chunk.
    """
    assert ChunkLocator(LINES).collect_above(6) == [["a <- 1"], ["b <- 2"]]

def test_CHK_COL_002_idempotent():
    """
    Tests CHK-COL-002: Repeated calls on an unchanged document agree.
    """
    locator = ChunkLocator(LINES)
    assert locator.collect_above(8) == locator.collect_above(8)
