from __future__ import annotations

import pytest

from law_trends.taxonomy import Snapshot, parse_snapshot

PRIVACY_LAW = "개인정보보호법"
NETWORK_LAW = "정보통신망법"
CHILD_LAW = "아동복지법"


def _raw_dataset() -> dict:
    return {
        "privacy": {
            "news": {
                "daily_timeline": {
                    "2024-01-01": {
                        # Stale parent counts; children always win.
                        "count": 99,
                        "중분류목록": {
                            "leak": {
                                "count": 10,
                                "소분류목록": {
                                    "leak_bank": {
                                        "count": 2,
                                        "관련법": PRIVACY_LAW,
                                        "대표뉴스": {"title": "Bank leak"},
                                    }
                                },
                            }
                        },
                    },
                    "2024-01-02": {
                        "중분류목록": {
                            "leak": {
                                "소분류목록": {
                                    "leak_bank": {"count": 2, "관련법": PRIVACY_LAW}
                                }
                            },
                            "cctv": {
                                "소분류목록": {
                                    "cctv_school": {"count": 1, "관련법": NETWORK_LAW}
                                }
                            },
                        }
                    },
                    "2024-01-03": {
                        "중분류목록": {
                            "cctv": {
                                "소분류목록": {
                                    "cctv_school": {
                                        "count": 5,
                                        "관련법": NETWORK_LAW,
                                        "articles": [{"title": "School CCTV"}],
                                    }
                                }
                            }
                        }
                    },
                }
            },
            "addsocial": {
                "daily_timeline": {
                    "2024-01-01": {
                        "중분류목록": {
                            "leak": {
                                "소분류목록": {
                                    "leak_bank": {
                                        "관련법": PRIVACY_LAW,
                                        "counts": {"찬성": 5, "반대": 5},
                                        "찬성": {
                                            "개정강화": {
                                                "count": 3,
                                                "소셜목록": ["s1", "s2", "s3"],
                                            },
                                            "폐지약화": {"count": 2, "소셜목록": ["w1"]},
                                        },
                                        "반대": {"count": 5, "소셜목록": ["o1", "o2"]},
                                    }
                                }
                            }
                        }
                    },
                    "2024-01-02": {
                        "중분류목록": {
                            "cctv": {
                                "소분류목록": {
                                    "cctv_school": {
                                        "관련법": NETWORK_LAW,
                                        "찬성": {
                                            "개정강화": {"count": 0},
                                            "폐지완화": {"count": 0},
                                        },
                                        "반대": {"count": 0},
                                    }
                                }
                            }
                        }
                    },
                }
            },
        },
        "child": {
            "news": {
                "daily_timeline": {
                    "2024-01-01": {
                        "중분류목록": {"abuse": {"소분류목록": {"abuse_school": {"count": 1}}}}
                    },
                    "2024-01-02": {
                        "중분류목록": {"abuse": {"소분류목록": {"abuse_school": {"count": 0}}}}
                    },
                    "2024-01-03": {
                        "중분류목록": {"abuse": {"소분류목록": {"abuse_school": {"count": 4}}}}
                    },
                }
            },
            "addsocial": {
                "daily_timeline": {
                    "2024-01-02": {
                        "중분류목록": {
                            "abuse": {
                                "소분류목록": {
                                    "abuse_school": {
                                        "관련법": CHILD_LAW,
                                        "찬성": {"개정강화": {"count": 1}},
                                        "반대": {"count": 1},
                                    }
                                }
                            }
                        }
                    }
                }
            },
        },
    }


@pytest.fixture
def raw_dataset() -> dict:
    return _raw_dataset()


@pytest.fixture
def snapshot(raw_dataset: dict) -> Snapshot:
    return parse_snapshot(raw_dataset)
