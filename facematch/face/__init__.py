"""Face building blocks (engine/gallery/matcher/profiles).

The engine module pulls in InsightFace and torch, so it is not imported here;
import `facematch.face.engine` explicitly where the real models are needed.
"""
