# samples.py  - articles behind the "Try with Sample Article" button
import random

SAMPLE_ARTICLES = [
    {
        "title": "The Future of Artificial Intelligence",
        "text": (
            "Artificial intelligence (AI) is transforming how we live, work, and interact with technology. "
            "From voice assistants to autonomous vehicles, AI systems are becoming increasingly integrated "
            "into our daily lives. Recent advancements in machine learning, particularly deep learning, have "
            "accelerated this trend, enabling computers to perform tasks that once required human intelligence.\n\n"
            "One of the most significant developments in AI is the emergence of large language models. These "
            "models, trained on vast amounts of text data, can generate human-like text, translate languages, "
            "and answer questions in an informative way. They still have limitations in reasoning and factual "
            "accuracy.\n\n"
            "AI is also making strides in healthcare, with algorithms that can detect diseases from medical "
            "images with accuracy that rivals that of human doctors. In transportation, self-driving cars are "
            "becoming increasingly capable. In scientific research, AI is accelerating discovery by predicting "
            "protein structures and helping design new materials.\n\n"
            "However, the rapid advancement of AI also raises ethical and societal concerns. Bias in AI "
            "systems, privacy implications of data collection, potential job displacement, and questions about "
            "governance and safety require careful consideration. Realizing the potential of AI will require "
            "collaboration among researchers, policymakers, industry leaders, and the public."
        ),
    },
    {
        "title": "The Impact of Climate Change on Global Ecosystems",
        "text": (
            "Climate change is altering Earth's ecosystems at an unprecedented rate, with far-reaching "
            "consequences for biodiversity and human well-being. Rising global temperatures, changing "
            "precipitation patterns, and more frequent extreme weather events are disrupting ecological "
            "balances that have evolved over millennia.\n\n"
            "Marine ecosystems are particularly vulnerable. Ocean warming and acidification threaten coral "
            "reefs, which provide habitat for about 25% of all marine species and support the livelihoods of "
            "millions of people.\n\n"
            "Terrestrial ecosystems are also shifting. In Arctic regions, warming is occurring at twice the "
            "global average rate, thawing permafrost and releasing stored carbon. In tropical regions, changing "
            "rainfall patterns and deforestation threaten rainforests, which are critical carbon sinks.\n\n"
            "Addressing these challenges requires both mitigation to reduce greenhouse gas emissions and "
            "adaptation to help ecosystems and communities cope. Nature-based solutions, such as protecting and "
            "restoring forests and wetlands, can address both climate change and biodiversity loss."
        ),
    },
]


def random_sample() -> dict:
    return random.choice(SAMPLE_ARTICLES)
