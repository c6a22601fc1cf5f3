"""
The `adoptimiser_gateway` package is the HTTP backend the Ad Optimiser chat
client delegates to. It executes graph queries against Neo4j and builds live
previews of generated chart components inside e2b sandboxes.
"""
