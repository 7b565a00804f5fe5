"""
Canonical agency code tables.

Codes follow the SME24 announcement API code book (업력구간코드,
기업인증/확인유형코드, 지역코드, ...).
"""

from ..core.models import KoreanRegion

NATIONWIDE_REGION_CODE = "1000"
REGION_CODE_LENGTH = 4

REGION_CODES = {
    "1000": "전국",
    "1100": "서울특별시",
    "2600": "부산광역시",
    "2700": "대구광역시",
    "2800": "인천광역시",
    "2900": "광주광역시",
    "3000": "대전광역시",
    "3100": "울산광역시",
    "3611": "세종특별자치시",
    "4100": "경기도",
    "4200": "강원도",
    "4300": "충청북도",
    "4400": "충청남도",
    "4500": "전라북도",
    "4600": "전라남도",
    "4700": "경상북도",
    "4800": "경상남도",
    "5000": "제주특별자치도",
}

REGION_TO_CODE = {
    KoreanRegion.SEOUL: "1100",
    KoreanRegion.BUSAN: "2600",
    KoreanRegion.DAEGU: "2700",
    KoreanRegion.INCHEON: "2800",
    KoreanRegion.GWANGJU: "2900",
    KoreanRegion.DAEJEON: "3000",
    KoreanRegion.ULSAN: "3100",
    KoreanRegion.SEJONG: "3611",
    KoreanRegion.GYEONGGI: "4100",
    KoreanRegion.GANGWON: "4200",
    KoreanRegion.CHUNGBUK: "4300",
    KoreanRegion.CHUNGNAM: "4400",
    KoreanRegion.JEONBUK: "4500",
    KoreanRegion.JEONNAM: "4600",
    KoreanRegion.GYEONGBUK: "4700",
    KoreanRegion.GYEONGNAM: "4800",
    KoreanRegion.JEJU: "5000",
}

CODE_TO_REGION = {code: region for region, code in REGION_TO_CODE.items()}

# Short and full Korean names; full forms are listed first so they win
REGION_NAMES = {
    "서울특별시": KoreanRegion.SEOUL,
    "부산광역시": KoreanRegion.BUSAN,
    "대구광역시": KoreanRegion.DAEGU,
    "인천광역시": KoreanRegion.INCHEON,
    "광주광역시": KoreanRegion.GWANGJU,
    "대전광역시": KoreanRegion.DAEJEON,
    "울산광역시": KoreanRegion.ULSAN,
    "세종특별자치시": KoreanRegion.SEJONG,
    "경기도": KoreanRegion.GYEONGGI,
    "강원특별자치도": KoreanRegion.GANGWON,
    "강원도": KoreanRegion.GANGWON,
    "충청북도": KoreanRegion.CHUNGBUK,
    "충청남도": KoreanRegion.CHUNGNAM,
    "전북특별자치도": KoreanRegion.JEONBUK,
    "전라북도": KoreanRegion.JEONBUK,
    "전라남도": KoreanRegion.JEONNAM,
    "경상북도": KoreanRegion.GYEONGBUK,
    "경상남도": KoreanRegion.GYEONGNAM,
    "제주특별자치도": KoreanRegion.JEJU,
    "서울": KoreanRegion.SEOUL,
    "부산": KoreanRegion.BUSAN,
    "대구": KoreanRegion.DAEGU,
    "인천": KoreanRegion.INCHEON,
    "광주": KoreanRegion.GWANGJU,
    "대전": KoreanRegion.DAEJEON,
    "울산": KoreanRegion.ULSAN,
    "세종": KoreanRegion.SEJONG,
    "경기": KoreanRegion.GYEONGGI,
    "강원": KoreanRegion.GANGWON,
    "충북": KoreanRegion.CHUNGBUK,
    "충남": KoreanRegion.CHUNGNAM,
    "전북": KoreanRegion.JEONBUK,
    "전남": KoreanRegion.JEONNAM,
    "경북": KoreanRegion.GYEONGBUK,
    "경남": KoreanRegion.GYEONGNAM,
    "제주": KoreanRegion.JEJU,
    # Long-form names with the administrative suffix stripped
    "충청북": KoreanRegion.CHUNGBUK,
    "충청남": KoreanRegion.CHUNGNAM,
    "전라북": KoreanRegion.JEONBUK,
    "전라남": KoreanRegion.JEONNAM,
    "경상북": KoreanRegion.GYEONGBUK,
    "경상남": KoreanRegion.GYEONGNAM,
}

COMPANY_SCALE_CODES = {
    "CC10": "중소기업",
    "CC30": "소상공인",
    "CC50": "1인기업",
    "CC60": "창업기업",
    "CC70": "예비창업자",
    "CC80": "기타",
}

# Extracted scale labels -> company scale code
COMPANY_SCALE_LABEL_TO_CODE = {
    "중소기업": "CC10",
    "소기업": "CC10",
    "중기업": "CC10",
    "소상공인": "CC30",
    "1인기업": "CC50",
    "창업기업": "CC60",
    "스타트업": "CC60",
    "예비창업자": "CC70",
    "중견기업": "CC80",
    "벤처기업": "CC80",
}

SALES_AMOUNT_CODES = {
    "SI01": "5억미만",
    "SI02": "5억~10억",
    "SI03": "10억~20억",
    "SI04": "20억~50억",
    "SI05": "50억~100억",
    "SI06": "100억~300억",
    "SI07": "300억이상",
}

# (code, lower bound inclusive, upper bound exclusive) in 억원
SALES_AMOUNT_BRACKETS = [
    ("SI01", 0, 5),
    ("SI02", 5, 10),
    ("SI03", 10, 20),
    ("SI04", 20, 50),
    ("SI05", 50, 100),
    ("SI06", 100, 300),
    ("SI07", 300, None),
]

EMPLOYEE_COUNT_CODES = {
    "EI01": "1~5명미만",
    "EI02": "5~10명미만",
    "EI03": "10~20명미만",
    "EI04": "20~50명미만",
    "EI05": "50~100명미만",
    "EI06": "100명이상",
}

EMPLOYEE_COUNT_BRACKETS = [
    ("EI01", 0, 5),
    ("EI02", 5, 10),
    ("EI03", 10, 20),
    ("EI04", 20, 50),
    ("EI05", 50, 100),
    ("EI06", 100, None),
]

BUSINESS_AGE_CODES = {
    "OI01": "3년미만",
    "OI02": "3년이상~5년미만",
    "OI03": "5년이상~7년미만",
    "OI04": "7년이상~10년미만",
    "OI05": "10년이상~20년미만",
    "OI06": "20년이상",
}

BUSINESS_AGE_BRACKETS = [
    ("OI01", 0, 3),
    ("OI02", 3, 5),
    ("OI03", 5, 7),
    ("OI04", 7, 10),
    ("OI05", 10, 20),
    ("OI06", 20, None),
]

CERTIFICATION_CODES = {
    "EC01": "수출유망중소기업",
    "EC02": "여성기업",
    "EC03": "장애인기업",
    "EC04": "중소기업",
    "EC05": "소상공인",
    "EC06": "기술혁신형중소기업",
    "EC07": "경영혁신형중소기업",
    "EC08": "벤처기업",
    "EC09": "우수그린비즈",
    "EC10": "사회적기업",
    "EC11": "연구소보유",
    "EC12": "지식재산경영인증 기업",
    "EC13": "부품소재기업",
    "EC14": "뿌리기술기업",
    "EC15": "에너지기술기업",
    "EC16": "기술전문기업",
    "EC17": "직접생산확인기업",
}

# Name variants (language, hyphenation, short forms) -> certification code.
# Keys are compared after ``normalize_cert_name``.
CERTIFICATION_SYNONYMS = {
    "이노비즈": "EC06",
    "INNO-BIZ": "EC06",
    "INNOBIZ": "EC06",
    "메인비즈": "EC07",
    "MAIN-BIZ": "EC07",
    "MAINBIZ": "EC07",
    "벤처": "EC08",
    "벤처인증": "EC08",
    "벤처기업확인": "EC08",
    "VENTURE": "EC08",
    "그린비즈": "EC09",
    "GREEN-BIZ": "EC09",
    "기업부설연구소": "EC11",
    "연구개발전담부서": "EC11",
    "부설연구소": "EC11",
    "뿌리기업": "EC14",
    "직접생산확인": "EC17",
    "수출유망기업": "EC01",
    "여성기업확인": "EC02",
    "장애인기업확인": "EC03",
    "IP경영인증": "EC12",
}

# Programs mentioning these require a hard regional filter
REGIONAL_REQUIRED_KEYWORDS = [
    "로컬벤처",
    "로컬크리에이터",
    "로컬푸드",
    "지역자원",
    "지역기반",
    "지역특화",
    "지역혁신선도",
    "지역혁신",
    "지역주도",
]
