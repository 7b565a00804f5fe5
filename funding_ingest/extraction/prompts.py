"""Prompt templates for the model-backed tiers."""

SHORT_CONTEXT_PROMPT = """당신은 한국 중소기업 지원사업 공고문에서 자격 요건을 추출하는 전문가입니다.

다음 공고 정보에서 아래 필드를 추출하세요:

추출 필드:
1. regions: 지역 제한 (예: ["대구"], ["서울", "경기"], 전국이면 [])
   - "서울특별시 소재 기업" → ["서울"]
   - 지역 제한 없으면 []

2. companyScale: 기업 규모 배열 (예: ["중소기업"], ["소상공인", "예비창업자"])
   - 가능한 값: 중소기업, 소상공인, 예비창업자, 1인기업, 스타트업, 벤처기업, 중견기업, 창업기업

3. minEmployees, maxEmployees: 직원 수 제한 (정수)
   - "상시근로자 5인 이상 300인 미만" → min: 5, max: 299
   - "종업원 50명 이하" → min: null, max: 50

4. minRevenueOk, maxRevenueOk: 매출액 제한 (억원 단위 숫자)
   - "매출액 100억 미만" → min: null, max: 99.9
   - "연매출 10억 이상 50억 이하" → min: 10, max: 50

5. minBusinessAge, maxBusinessAge: 업력 제한 (년 단위 정수)
   - "창업 후 7년 이내" → min: null, max: 7
   - "창업 3년 초과 7년 이내" → min: 4, max: 7
   - "업력 5년 이상" → min: 5, max: null

규칙:
- 값을 찾을 수 없으면 null
- 전국 대상이면 regions는 []
- JSON만 응답 (설명 불필요)

응답 형식:
{{
  "regions": [],
  "companyScale": [],
  "minEmployees": null,
  "maxEmployees": null,
  "minRevenueOk": null,
  "maxRevenueOk": null,
  "minBusinessAge": null,
  "maxBusinessAge": null
}}

---
공고 정보:
제목: {title}
설명: {description}
지원대상: {support_target}
---"""


DOCUMENT_PROMPT = """당신은 한국 중소기업 지원사업 공고 문서에서 자격 요건을 추출하는 전문가입니다.

아래 공고 전문에서 다음 필드들을 정확하게 추출하세요.

추출 필드:
1. regions: 지역 제한 (예: ["대구"], ["서울", "경기"], 전국이면 [])
2. companyScale: 기업 규모 배열
   - 가능한 값: 중소기업, 소상공인, 예비창업자, 1인기업, 스타트업, 벤처기업, 중견기업, 창업기업
3. minEmployees, maxEmployees: 직원 수 제한 (정수)
4. minRevenueOk, maxRevenueOk: 매출액 제한 (억원 단위 숫자, "100억 미만" → max: 99.9)
5. minBusinessAge, maxBusinessAge: 업력 제한 (년 단위 정수)
6. requiredCerts: 필요 인증/자격 배열 (예: ["이노비즈", "벤처인증", "메인비즈"], 없으면 [])
7. targetIndustry: 대상 업종 (주요 업종 하나만, 예: "제조업", 없으면 null)
8. exclusionConditions: 배제/제한 조건 배열 (예: ["세금 체납 기업", "휴업 또는 폐업 기업"])
9. supportAmountMin, supportAmountMax: 지원 금액 (만원 단위 정수)
   - "최대 3억원" → min: null, max: 30000
   - "1억~5억원" → min: 10000, max: 50000

규칙:
- 값을 찾을 수 없으면 null
- 전국 대상이면 regions는 []
- 복합 조건 주의: "A이면서 B인 기업" → companyScale에 A, B 모두 포함
- 표(테이블) 형식 데이터도 정확히 파싱
- JSON만 응답 (설명 불필요)

응답 형식:
{{
  "regions": [],
  "companyScale": [],
  "minEmployees": null,
  "maxEmployees": null,
  "minRevenueOk": null,
  "maxRevenueOk": null,
  "minBusinessAge": null,
  "maxBusinessAge": null,
  "requiredCerts": [],
  "targetIndustry": null,
  "exclusionConditions": [],
  "supportAmountMin": null,
  "supportAmountMax": null
}}

---
공고 제목: {title}

공고 본문:
{document_text}
---"""
